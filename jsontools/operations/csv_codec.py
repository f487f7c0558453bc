"""
jsontools/operations/csv_codec.py

CSV <-> Tree conversion.

Parsing is line oriented: the header line picks the delimiter, every later
line becomes a dict keyed by the header, and each cell goes through
coerce_scalar(). Quoted fields may contain the delimiter and doubled quotes
but not line breaks.

Serialization flattens each row (nested dicts become dot-joined columns),
takes the union of keys as the header and quotes values only when needed.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Iterable, List

from jsontools.operations.flattener import flatten

CANDIDATE_DELIMITERS = (",", "\t", "|", ";")

# Canonical integers only: "007" keeps its leading zeros as a string.
_INT_RE = re.compile(r"[+-]?(?:0|[1-9][0-9]*)")
# A float needs a decimal point or an exponent.
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[0-9]+[eE][+-]?[0-9]+)"
)


def coerce_scalar(text: str) -> Any:
    """
    Best-effort typing of a textual cell.

    - "true" / "false"              -> bool
    - canonical integer text        -> int
    - decimal / exponent text       -> float (finite values only)
    - anything else                 -> the text unchanged

    Used for CSV cells and XML text/attribute values alike.
    """
    candidate = text.strip()
    if candidate == "true":
        return True
    if candidate == "false":
        return False
    if _INT_RE.fullmatch(candidate):
        return int(candidate)
    if _FLOAT_RE.fullmatch(candidate):
        number = float(candidate)
        if math.isfinite(number):
            return number
    return text


def detect_delimiter(line: str) -> str:
    """Most frequent candidate delimiter in the header line; comma on ties."""
    detected = ","
    best = 0
    for delimiter in CANDIDATE_DELIMITERS:
        count = line.count(delimiter)
        if count > best:
            best = count
            detected = delimiter
    return detected


def split_line(line: str, delimiter: str) -> List[str]:
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and line[i + 1 : i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> List[Dict[str, Any]]:
    lines = [line.rstrip("\r") for line in text.strip().split("\n")]
    lines = [line for line in lines if line.strip()]
    if not lines:
        return []

    delimiter = detect_delimiter(lines[0])
    headers = split_line(lines[0], delimiter)

    rows: List[Dict[str, Any]] = []
    for line in lines[1:]:
        values = split_line(line, delimiter)
        row: Dict[str, Any] = {}
        for position, header in enumerate(headers):
            row[header] = coerce_scalar(values[position]) if position < len(values) else ""
        rows.append(row)

    return rows


def escape_value(value: str, delimiter: str) -> str:
    if delimiter in value or '"' in value or "\n" in value or "\r" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def _cell_text(value: Any, flatten_arrays: bool) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        if not flatten_arrays:
            return json.dumps(value, ensure_ascii=False)
        return ";".join(_cell_text(item, flatten_arrays) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _flatten_row(row: Any, flatten_depth: int) -> Dict[str, Any]:
    if isinstance(row, (dict, list)):
        return flatten(row, delimiter=".", max_depth=flatten_depth).result
    return {"value": row}


def _union_headers(rows: Iterable[Dict[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def to_csv(
    data: Any,
    *,
    delimiter: str = ",",
    headers: bool = True,
    flatten_arrays: bool = True,
    flatten_depth: int = 1,
) -> str:
    rows = data if isinstance(data, list) else [data]
    if not rows:
        return ""

    flat_rows = [_flatten_row(row, flatten_depth) for row in rows]
    columns = _union_headers(flat_rows)

    lines: List[str] = []
    if headers:
        lines.append(delimiter.join(escape_value(column, delimiter) for column in columns))

    for row in flat_rows:
        cells = (escape_value(_cell_text(row.get(column), flatten_arrays), delimiter) for column in columns)
        lines.append(delimiter.join(cells))

    return "\n".join(lines)
