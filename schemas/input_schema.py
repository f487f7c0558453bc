# -------------------------------------------------------------------
# schemas/input_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **public request schemas** for the
# JSON Transform API, one model per POST endpoint.
#
# It specifies required fields, types and value ranges. Anything that
# fails here is answered with 400 INVALID_INPUT by the
# RequestValidationError handler in api.py.
#
# KEY DESIGN DECISION
# -------------------
# Multi-word fields accept **both camelCase and snake_case**
# (maxDepth / max_depth, rootElement / root_element, ...):
#   - alias=camelCase on each field
#   - populate_by_name=True in model_config
#
# WHAT IS DELIBERATELY *NOT* CHECKED HERE
# ---------------------------------------
# - Format tags are plain strings: an unknown tag must produce
#   INVALID_FORMAT, not INVALID_INPUT, so api.py checks membership.
# - `data` is Any and may be null in the body; "null data" is rejected
#   per endpoint in api.py where the operation requires a value.
# - Payload size is measured in api.py on the decoded value.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransformOptions(BaseModel):
    """Output knobs for /api/transform; each format reads only what applies."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pretty: bool = True
    indent: int = Field(2, ge=0, le=10)
    delimiter: str = Field(",", min_length=1, description="CSV output delimiter")
    headers: bool = Field(True, description="Emit a CSV header line")
    root_element: Optional[str] = Field(
        None,
        alias="rootElement",
        min_length=1,
        description="XML root element name (defaults to the configured xml_root_element)",
    )
    flatten_arrays: bool = Field(
        True,
        alias="flattenArrays",
        description="Join array cells with ';' in CSV output instead of JSON-encoding them",
    )
    flatten_depth: int = Field(1, alias="flattenDepth", ge=1, le=100)


class TransformRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "input": "json",
                "output": "yaml",
                "data": {"name": "NK", "skills": ["code", "deploy"]},
            }
        },
    )

    input_format: str = Field(..., alias="input", min_length=1, description="json | csv | xml | yaml | toml")
    output_format: str = Field(..., alias="output", min_length=1, description="json | csv | xml | yaml | toml")
    data: Any = Field(..., description="Object / array for JSON input, otherwise the source text")
    options: TransformOptions = Field(default_factory=TransformOptions)


class FlattenRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"data": {"user": {"name": {"first": "NK"}}}, "delimiter": "."}},
    )

    data: Dict[str, Any]
    delimiter: str = Field(".", min_length=1)
    max_depth: int = Field(10, alias="maxDepth", ge=1, le=100)


class UnflattenRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"data": {"user.name.first": "NK"}, "delimiter": "."}},
    )

    data: Dict[str, Any]
    delimiter: str = Field(".", min_length=1)


class QueryRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": {"users": [{"name": "NK", "role": "admin"}, {"name": "Bob", "role": "user"}]},
                "query": "users[?role=='admin'].name",
            }
        },
    )

    data: Any = Field(...)
    query: str = Field(..., min_length=1, description="JMESPath expression")


class DiffRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "original": {"name": "NK", "age": 25},
                "modified": {"name": "NK", "age": 26, "city": "SF"},
            }
        },
    )

    original: Any = Field(...)
    modified: Any = Field(...)


class ValidateRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "data": {"name": "NK", "email": "nk@example.com"},
                "schema": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "email": {"type": "string", "format": "email"},
                    },
                    "required": ["name", "email"],
                },
            }
        },
    )

    data: Any = Field(...)
    json_schema: Dict[str, Any] = Field(..., alias="schema")
