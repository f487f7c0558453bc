# tests/test_schema_validator.py
from __future__ import annotations

import pytest

from jsontools.operations.errors import ErrorCode, SchemaDocumentError
from jsontools.operations.schema_validator import SchemaCache, SchemaValidator, schema_fingerprint

USER_SCHEMA = {
    "type": "object",
    "required": ["name", "email"],
    "properties": {
        "name": {"type": "string"},
        "email": {"type": "string", "format": "email"},
        "age": {"type": "integer", "minimum": 0},
    },
}


def test_valid_document() -> None:
    out = SchemaValidator().validate({"name": "NK", "email": "nk@example.com"}, USER_SCHEMA)
    assert out.valid is True
    assert out.errors == []


def test_format_keyword_is_enforced() -> None:
    out = SchemaValidator().validate({"name": "NK", "email": "not-an-email"}, USER_SCHEMA)

    assert out.valid is False
    assert [(e.path, e.keyword) for e in out.errors] == [("/email", "format")]


def test_all_errors_reported_sorted_by_path() -> None:
    out = SchemaValidator().validate({"name": 1, "age": -1}, USER_SCHEMA)

    assert out.valid is False
    assert [e.path for e in out.errors] == ["/", "/age", "/name"]
    assert [e.keyword for e in out.errors] == ["required", "minimum", "type"]
    assert "'email' is a required property" in out.errors[0].message


def test_nested_paths_are_json_pointers() -> None:
    schema = {"type": "object", "properties": {"items": {"type": "array", "items": {"type": "integer"}}}}

    out = SchemaValidator().validate({"items": [1, "two"]}, schema)

    assert [e.path for e in out.errors] == ["/items/1"]


def test_malformed_schema_raises_validation_error() -> None:
    with pytest.raises(SchemaDocumentError) as excinfo:
        SchemaValidator().validate({}, {"type": 12})

    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR
    assert excinfo.value.message.startswith("Invalid JSON Schema")


def test_unresolvable_ref_raises_validation_error() -> None:
    with pytest.raises(SchemaDocumentError):
        SchemaValidator().validate({"a": 1}, {"$ref": "#/$defs/missing"})


def test_schema_cache_reuses_compiled_validator() -> None:
    cache = SchemaCache(maxsize=2)
    validator = SchemaValidator(cache=cache)

    first = validator.compile(USER_SCHEMA)
    second = validator.compile(dict(reversed(list(USER_SCHEMA.items()))))

    assert first is second
    assert len(cache) == 1


def test_schema_cache_evicts_least_recently_used() -> None:
    cache = SchemaCache(maxsize=2)
    validator = SchemaValidator(cache=cache)
    schemas = [{"type": "string"}, {"type": "integer"}, {"type": "boolean"}]

    for schema in schemas:
        validator.compile(schema)

    assert len(cache) == 2
    assert cache.get(schema_fingerprint(schemas[0])) is None
    assert cache.get(schema_fingerprint(schemas[2])) is not None
