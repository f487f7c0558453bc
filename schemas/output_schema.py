# -------------------------------------------------------------------
# schemas/output_schema.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **internal response schemas** of the
# JSON Transform API: one `data` model per operation plus the two
# envelopes every endpoint answers with.
#
# NAMING CONVENTION (IMPORTANT)
# -----------------------------
# All fields in this file use **snake_case** by design.
#
# At the API boundary (in api.py), response objects are converted to
# **camelCase JSON** using:
#     convert_keys_snake_to_camel()
#
# Caller data (`result`, diff `value` / `from` / `to` / `item`) is listed in
# settings.preserve_container_keys and is never renamed.
#
# DO NOT rename fields here to camelCase.
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class TransformData(BaseModel):
    result: str
    input_format: str
    output_format: str
    input_size: int = Field(..., ge=0, description="UTF-8 bytes of the input")
    output_size: int = Field(..., ge=0, description="UTF-8 bytes of the result")


class FlattenData(BaseModel):
    result: Dict[str, Any]
    keys_flattened: int
    original_depth: int


class UnflattenData(BaseModel):
    result: Dict[str, Any]
    keys_expanded: int


class QueryData(BaseModel):
    result: Any = None
    query: str
    match_count: int


class DiffSummaryData(BaseModel):
    added: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0


class DiffData(BaseModel):
    """
    `changes` entries are tagged by `type`:
      added / removed -> {path, type, value}
      changed         -> {path, type, from, to}
      array           -> {path, type, index, item: {kind, value}}
    """

    changes: List[Dict[str, Any]] = Field(default_factory=list)
    summary: DiffSummaryData


class ValidationIssueData(BaseModel):
    path: str
    message: str
    keyword: str


class ValidateData(BaseModel):
    valid: bool
    errors: List[ValidationIssueData] = Field(default_factory=list)


class EnvelopeMeta(BaseModel):
    credits: int = Field(..., ge=0)
    processing_ms: int = Field(..., ge=0)


class SuccessEnvelope(BaseModel):
    """
    Standard success envelope.

    NOTE:
    - This schema is INTERNAL and uses snake_case.
    - Keys are converted to camelCase at the API boundary.
    """

    model_config = {"extra": "forbid"}

    success: Literal[True] = True
    data: Any = None
    meta: EnvelopeMeta


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    model_config = {"extra": "forbid"}

    success: Literal[False] = False
    error: ErrorBody
