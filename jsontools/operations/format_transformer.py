"""
jsontools/operations/format_transformer.py

WHAT THIS FILE IS FOR
---------------------
This module converts data between the five supported textual formats:

    json | csv | xml | yaml | toml

by parsing the source into an in-memory Tree and serializing that Tree
into the target format:

    parse(data, "csv")  ->  Tree  ->  serialize(tree, "yaml", options)

TREE INVARIANTS
---------------
Whatever the source format, parse() returns a JSON-compatible Tree:
- dict keys are strings (YAML's 1 / true / null keys become "1" / "true" / "null")
- date / time / datetime values become ISO-8601 strings
- sets become lists, bytes become base64 text, NaN / infinity become null
- self-referencing structures (recursive YAML aliases) are rejected
  with CircularReferenceError

ERROR RULES
-----------
- Malformed source data           -> ParseError ("Invalid <FORMAT>: ...")
- Tree not representable in target -> SerializeError
- Cyclic tree                      -> CircularReferenceError

Format-specific work lives in csv_codec.py and xml_codec.py; JSON, YAML
and TOML are thin wrappers over json, PyYAML and tomllib / tomli_w.
"""

from __future__ import annotations

import base64
import datetime as dt
import json
import math
import tomllib
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Optional

import structlog
import tomli_w
import yaml

from jsontools.operations.csv_codec import parse_csv, to_csv
from jsontools.operations.errors import CircularReferenceError, ParseError, SerializeError
from jsontools.operations.xml_codec import parse_xml, to_xml

logger = structlog.get_logger(__name__)

SUPPORTED_FORMATS: FrozenSet[str] = frozenset({"json", "csv", "xml", "yaml", "toml"})


@dataclass
class SerializeOptions:
    """Output knobs; each format reads only the ones that apply to it."""

    pretty: bool = True
    indent: int = 2
    delimiter: str = ","
    headers: bool = True
    root_element: str = "root"
    flatten_arrays: bool = True
    flatten_depth: int = 1


def is_supported_format(fmt: Any) -> bool:
    return isinstance(fmt, str) and fmt in SUPPORTED_FORMATS


def byte_size(text: str) -> int:
    return len(text.encode("utf-8"))


def _key_text(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, (dt.date, dt.time)):
        return key.isoformat()
    return str(key)


def normalize_tree(value: Any, _active: Optional[set] = None) -> Any:
    """Return a JSON-compatible copy of value (see TREE INVARIANTS)."""
    if isinstance(value, float) and not math.isfinite(value):
        # YAML .nan / .inf and TOML nan / inf have no JSON spelling
        return None
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")

    active = _active if _active is not None else set()
    marker = id(value)
    if marker in active:
        raise CircularReferenceError("Data contains circular references")
    active.add(marker)
    try:
        if isinstance(value, dict):
            return {_key_text(k): normalize_tree(v, active) for k, v in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [normalize_tree(item, active) for item in value]
    finally:
        active.discard(marker)

    return str(value)


# -------------------------------------------------------------------
# Parsing
# -------------------------------------------------------------------
def _parse_json(data: Any) -> Any:
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML: {exc}") from exc


def _parse_toml(text: str) -> Any:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ParseError(f"Invalid TOML: {exc}") from exc


_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "json": _parse_json,
    "csv": parse_csv,
    "xml": parse_xml,
    "yaml": _parse_yaml,
    "toml": _parse_toml,
}


def parse(data: Any, input_format: str) -> Any:
    """
    Parse data declared as input_format into a Tree.

    JSON accepts an already-decoded value or a JSON string; every other
    format requires a string.
    """
    if input_format not in SUPPORTED_FORMATS:
        raise ParseError(f"Unsupported input format: {input_format}")
    if input_format != "json" and not isinstance(data, str):
        raise ParseError(f"{input_format.upper()} input must be a string")

    try:
        parsed = _PARSERS[input_format](data)
    except RecursionError as exc:
        raise ParseError(f"Invalid {input_format.upper()}: document nests too deeply") from exc

    return normalize_tree(parsed)


# -------------------------------------------------------------------
# Serialization
# -------------------------------------------------------------------
def _to_json(tree: Any, options: SerializeOptions) -> str:
    try:
        if options.pretty:
            return json.dumps(tree, ensure_ascii=False, indent=options.indent)
        return json.dumps(tree, ensure_ascii=False, separators=(",", ":"))
    except ValueError as exc:
        if "circular" in str(exc).lower():
            raise CircularReferenceError("Data contains circular references") from exc
        raise SerializeError(f"Failed to convert to JSON: {exc}") from exc
    except TypeError as exc:
        raise SerializeError(f"Failed to convert to JSON: {exc}") from exc


def _to_yaml(tree: Any, options: SerializeOptions) -> str:
    try:
        return yaml.safe_dump(
            tree,
            indent=options.indent,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=float("inf"),
        )
    except yaml.YAMLError as exc:
        raise SerializeError(f"Failed to convert to YAML: {exc}") from exc


def _to_toml(tree: Any, options: SerializeOptions) -> str:
    if not isinstance(tree, dict):
        raise SerializeError("TOML output requires a plain object at the root level")
    try:
        return tomli_w.dumps(tree)
    except (TypeError, ValueError) as exc:
        raise SerializeError(f"Failed to convert to TOML: {exc}") from exc


def _to_csv(tree: Any, options: SerializeOptions) -> str:
    return to_csv(
        tree,
        delimiter=options.delimiter,
        headers=options.headers,
        flatten_arrays=options.flatten_arrays,
        flatten_depth=options.flatten_depth,
    )


def _to_xml(tree: Any, options: SerializeOptions) -> str:
    return to_xml(tree, root_element=options.root_element, pretty=options.pretty, indent=options.indent)


_SERIALIZERS: Dict[str, Callable[[Any, SerializeOptions], str]] = {
    "json": _to_json,
    "csv": _to_csv,
    "xml": _to_xml,
    "yaml": _to_yaml,
    "toml": _to_toml,
}


def serialize(tree: Any, output_format: str, options: Optional[SerializeOptions] = None) -> str:
    if output_format not in SUPPORTED_FORMATS:
        raise SerializeError(f"Unsupported output format: {output_format}")

    # cycle check up front; yaml would otherwise emit anchors and csv/xml recurse forever
    normalize_tree(tree)

    try:
        return _SERIALIZERS[output_format](tree, options or SerializeOptions())
    except RecursionError as exc:
        raise SerializeError(f"Failed to convert to {output_format.upper()}: data nests too deeply") from exc


def transform(data: Any, input_format: str, output_format: str, options: Optional[SerializeOptions] = None) -> str:
    tree = parse(data, input_format)
    result = serialize(tree, output_format, options)
    logger.debug(
        "format_transformed",
        input_format=input_format,
        output_format=output_format,
        output_size=byte_size(result),
    )
    return result
