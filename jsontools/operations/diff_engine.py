"""
jsontools/operations/diff_engine.py

WHAT THIS FILE IS FOR
---------------------
Structural comparison of two Trees, built on deepdiff's tree view.

CLASSIFICATION
--------------
deepdiff report                       -> change type
-----------------------------------------------------
dictionary_item_added                 -> added    {path, value}
dictionary_item_removed               -> removed  {path, value}
values_changed / type_changes         -> changed  {path, from, to}
iterable_item_added / _removed        -> array    {path, index, item: {kind, value}}

`path` is the dot-joined key/index path ("" for the root). For array
entries it points at the list itself and `index` names the element.

SUMMARY
-------
added / removed / changed count entries; array entries count towards
added or removed according to their inner kind.

`unchanged` is max(0, leaf_count(original) - removed - changed). This is
an approximation, not an exact count of equal leaves: a removed or changed
subtree counts once no matter how many leaves it holds.

BOOLEANS
--------
Booleans never equal numbers (true vs 1 is a change) while 1 vs 1.0 stays
equal. Both trees are tagged before diffing: strings get the "s:" prefix and
booleans become "b:true" / "b:false", so deepdiff sees a bool and a number
as different types, even inside lists. Reported values are untagged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from deepdiff import DeepDiff

ADDED = "added"
REMOVED = "removed"
CHANGED = "changed"
ARRAY = "array"

_REPORT_KINDS = {
    "dictionary_item_added": ADDED,
    "dictionary_item_removed": REMOVED,
    "values_changed": CHANGED,
    "type_changes": CHANGED,
    "iterable_item_added": ADDED,
    "iterable_item_removed": REMOVED,
}

_ITERABLE_REPORTS = {"iterable_item_added", "iterable_item_removed"}

_STR_TAG = "s:"
_BOOL_TAG = "b:"


@dataclass
class DiffChange:
    path: str
    type: str
    value: Any = None
    old: Any = None
    new: Any = None
    index: Optional[int] = None
    item_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.type == CHANGED:
            return {"path": self.path, "type": self.type, "from": self.old, "to": self.new}
        if self.type == ARRAY:
            return {
                "path": self.path,
                "type": self.type,
                "index": self.index,
                "item": {"kind": self.item_kind, "value": self.value},
            }
        return {"path": self.path, "type": self.type, "value": self.value}


@dataclass
class DiffSummary:
    added: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0


@dataclass
class DiffResult:
    changes: List[DiffChange] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)


def leaf_count(value: Any) -> int:
    """Scalars count 1; containers count their leaves (an empty one counts 0)."""
    if isinstance(value, dict):
        return sum(leaf_count(v) for v in value.values())
    if isinstance(value, list):
        return sum(leaf_count(v) for v in value)
    return 1


def _tag(value: Any) -> Any:
    if isinstance(value, bool):
        return _BOOL_TAG + ("true" if value else "false")
    if isinstance(value, str):
        return _STR_TAG + value
    if isinstance(value, dict):
        return {key: _tag(child) for key, child in value.items()}
    if isinstance(value, list):
        return [_tag(child) for child in value]
    return value


def _untag(value: Any) -> Any:
    if isinstance(value, str):
        if value.startswith(_BOOL_TAG):
            return value == _BOOL_TAG + "true"
        return value[len(_STR_TAG) :]
    if isinstance(value, dict):
        return {key: _untag(child) for key, child in value.items()}
    if isinstance(value, list):
        return [_untag(child) for child in value]
    return value


def _join(segments: List[Any]) -> str:
    return ".".join(str(segment) for segment in segments)


def _to_change(report: str, level: Any) -> DiffChange:
    kind = _REPORT_KINDS.get(report, CHANGED)
    segments = level.path(output_format="list")

    if report in _ITERABLE_REPORTS:
        value = level.t2 if kind == ADDED else level.t1
        return DiffChange(
            path=_join(segments[:-1]),
            type=ARRAY,
            index=segments[-1] if segments else None,
            item_kind=kind,
            value=_untag(value),
        )
    if kind == ADDED:
        return DiffChange(path=_join(segments), type=ADDED, value=_untag(level.t2))
    if kind == REMOVED:
        return DiffChange(path=_join(segments), type=REMOVED, value=_untag(level.t1))
    return DiffChange(path=_join(segments), type=CHANGED, old=_untag(level.t1), new=_untag(level.t2))


def compute_diff(original: Any, modified: Any) -> DiffResult:
    tree = DeepDiff(
        _tag(original),
        _tag(modified),
        view="tree",
        ignore_order=False,
        ignore_numeric_type_changes=True,
        threshold_to_diff_deeper=0,
    )

    result = DiffResult()
    for report, levels in tree.items():
        for level in levels:
            change = _to_change(report, level)
            result.changes.append(change)

            kind = change.item_kind if change.type == ARRAY else change.type
            if kind == ADDED:
                result.summary.added += 1
            elif kind == REMOVED:
                result.summary.removed += 1
            else:
                result.summary.changed += 1

    result.summary.unchanged = max(
        0, leaf_count(original) - result.summary.removed - result.summary.changed
    )
    return result
