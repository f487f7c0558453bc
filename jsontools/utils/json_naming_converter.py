"""
jsontools/utils/json_naming_converter.py

WHAT THIS FILE IS FOR
---------------------
This module provides a **recursive JSON key normalization utility**
used by the JSON Transform API to enforce a **stable camelCase response
contract** (e.g. keys_flattened -> keysFlattened, processing_ms -> processingMs)
while the Python side keeps snake_case everywhere.

It is used exactly once per response, right before the envelope is
returned by api.py.

PRESERVE-CONTAINER MECHANISM
----------------------------
Most of what this service returns is *caller data*: the flattened mapping,
the query result, the old/new values of a diff entry. Those keys must come
back byte-for-byte as the caller sent them.

This module supports this via `preserve_container_keys`:

- The container key itself is normalized to camelCase
- Its value (dict, list or scalar) is returned untouched

Example:
    preserve_container_keys = {"result"}

Input:
    {"keys_flattened": 1, "result": {"user_name.first_name": "NK"}}

Output:
    {"keysFlattened": 1, "result": {"user_name.first_name": "NK"}}

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Perform request validation
- Modify values
- Perform I/O or logging

It is a **pure transformation utility**.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


def snake_to_camel(s: str) -> str:
    """
    Convert snake_case string to camelCase.

    - Leaves strings without '_' unchanged
    - Preserves leading/trailing underscores
    """
    if "_" not in s:
        return s

    leading = len(s) - len(s.lstrip("_"))
    trailing = len(s) - len(s.rstrip("_"))
    core = s.strip("_")

    if not core:
        return s  # e.g. "___"

    parts = [p for p in core.split("_") if p]
    first = parts[0]
    rest = [p[:1].upper() + p[1:] for p in parts[1:]]

    return ("_" * leading) + first + "".join(rest) + ("_" * trailing)


def convert_keys_snake_to_camel(
    obj: Any,
    *,
    preserve_container_keys: Optional[Iterable[str]] = None,
) -> Any:
    """
    Recursively convert dict keys from snake_case to camelCase.

    Args:
        obj:
            Any JSON-like object (dict / list / primitive)
        preserve_container_keys:
            Iterable of keys (snake_case OR camelCase) whose values are
            caller data: the key is converted, the value is kept verbatim.

    Returns:
        New object with converted keys (input is not mutated)
    """
    preserve = set(preserve_container_keys or [])

    if isinstance(obj, list):
        return [convert_keys_snake_to_camel(x, preserve_container_keys=preserve) for x in obj]

    if isinstance(obj, dict):
        out: dict[Any, Any] = {}

        for key, value in obj.items():
            if not isinstance(key, str):
                out[key] = value
                continue

            camel_key = snake_to_camel(key)

            if key in preserve or camel_key in preserve:
                out[camel_key] = value
            else:
                out[camel_key] = convert_keys_snake_to_camel(value, preserve_container_keys=preserve)

        return out

    return obj
