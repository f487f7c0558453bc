"""
jsontools/operations/flattener.py

WHAT THIS FILE IS FOR
---------------------
Conversion between nested JSON trees and single-level mappings keyed by
delimiter-joined paths:

    {"user": {"tags": ["a", "b"]}}  <->  {"user.tags.0": "a", "user.tags.1": "b"}

FLATTEN RULES
-------------
- Depth-first; the root sits at depth 0 and every key/index step adds 1
- A node deeper than `max_depth` is stored verbatim at its path, so paths
  never hold more than `max_depth + 1` segments
- Empty dicts and empty lists are leaves (stored verbatim, never dropped)
- `original_depth` measures the source tree and ignores `max_depth`
- `keys_flattened` counts leaves written, so colliding paths ("a.b" and
  {"a": {"b": ...}}) count once each while the later write wins

UNFLATTEN RULES
---------------
- Keys are processed in input order, each one independently
- A missing intermediate container is a list when the *next* segment is
  all ASCII digits, otherwise a dict
- A scalar sitting where a container is needed is replaced; the last
  write wins, with no reconciliation across keys
- Lists are padded with None when an index lands past their end

WHAT THIS FILE IS NOT FOR
-------------------------
- Request validation (delimiter / max_depth ranges live in schemas/)
- CSV column naming (csv_codec.py reuses flatten() for that)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from jsontools.operations.errors import FlattenError

_INDEX_RE = re.compile(r"[0-9]+")

# Upper bound for list indices created by unflatten ("a.999999999" would
# otherwise allocate a list of a billion Nones).
MAX_LIST_INDEX = 100_000

Container = Union[Dict[str, Any], List[Any]]


@dataclass
class FlattenResult:
    result: Dict[str, Any]
    keys_flattened: int
    original_depth: int


@dataclass
class UnflattenResult:
    result: Dict[str, Any]
    keys_expanded: int


def nesting_depth(value: Any, current: int = 0) -> int:
    """Maximum nesting depth; an empty container still counts as one level."""
    if isinstance(value, dict):
        children = list(value.values())
    elif isinstance(value, list):
        children = value
    else:
        return current

    if not children:
        return current + 1
    return max(nesting_depth(child, current + 1) for child in children)


def flatten(data: Any, delimiter: str = ".", max_depth: int = 10) -> FlattenResult:
    result: Dict[str, Any] = {}
    leaves = 0

    def recurse(node: Any, path: str, depth: int) -> None:
        nonlocal leaves
        if depth > max_depth or not isinstance(node, (dict, list)) or not node:
            result[path] = node
            leaves += 1
            return

        items = node.items() if isinstance(node, dict) else enumerate(node)
        for key, child in items:
            child_path = f"{path}{delimiter}{key}" if path else str(key)
            recurse(child, child_path, depth + 1)

    if isinstance(data, (dict, list)) and not data:
        # nothing to expand; an empty root yields an empty mapping
        return FlattenResult(result={}, keys_flattened=0, original_depth=nesting_depth(data))

    recurse(data, "", 0)
    return FlattenResult(result=result, keys_flattened=leaves, original_depth=nesting_depth(data))


def _is_index(segment: str) -> bool:
    return _INDEX_RE.fullmatch(segment) is not None


def _child(container: Container, segment: str, flat_key: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment)
    if not _is_index(segment):
        raise FlattenError(f"Key '{flat_key}' uses non-numeric segment '{segment}' on a list")
    index = int(segment)
    return container[index] if index < len(container) else None


def _assign(container: Container, segment: str, value: Any, flat_key: str) -> None:
    if isinstance(container, dict):
        container[segment] = value
        return

    if not _is_index(segment):
        raise FlattenError(f"Key '{flat_key}' uses non-numeric segment '{segment}' on a list")
    index = int(segment)
    if index > MAX_LIST_INDEX:
        raise FlattenError(f"Key '{flat_key}' uses list index {index} (max {MAX_LIST_INDEX})")
    if index >= len(container):
        container.extend([None] * (index + 1 - len(container)))
    container[index] = value


def unflatten(data: Dict[str, Any], delimiter: str = ".") -> UnflattenResult:
    result: Dict[str, Any] = {}

    for flat_key, value in data.items():
        segments = flat_key.split(delimiter)
        current: Container = result

        for segment, next_segment in zip(segments, segments[1:]):
            child = _child(current, segment, flat_key)
            if not isinstance(child, (dict, list)):
                child = [] if _is_index(next_segment) else {}
                _assign(current, segment, child, flat_key)
            current = child

        _assign(current, segments[-1], value, flat_key)

    return UnflattenResult(result=result, keys_expanded=len(data))
