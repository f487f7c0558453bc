"""
jsontools/utils/response_envelope.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rule* for shaping every
response returned by the JSON Transform API.

PUBLIC CONTRACT RULE
--------------------
Every endpoint answers with one of two envelopes:

- success -> {"success": true,  "data": {...}, "meta": {"credits": N, "processingMs": T}}
- failure -> {"success": false, "error": {"code": "...", "message": "..."}}

HTTP status for failures is derived from the error code only:

- PAYLOAD_TOO_LARGE   -> 413
- NOT_FOUND           -> 404
- METHOD_NOT_ALLOWED  -> 405
- INTERNAL_ERROR      -> 500
- anything else       -> 400

Envelopes are built with snake_case keys; camelCase conversion happens
once, at the API boundary (see json_naming_converter.py).

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT:
- Decide which error code applies to a failure
- Log, raise, or handle exceptions
- Perform any data transformation
"""

from __future__ import annotations

import time
from typing import Any, Dict, Union

from pydantic import BaseModel

from jsontools.operations.errors import ErrorCode
from schemas.output_schema import EnvelopeMeta, ErrorBody, ErrorEnvelope, SuccessEnvelope

_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.PAYLOAD_TOO_LARGE: 413,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.INTERNAL_ERROR: 500,
}


def status_for_code(code: Union[ErrorCode, str]) -> int:
    try:
        return _STATUS_BY_CODE.get(ErrorCode(code), 400)
    except ValueError:
        return 400


def elapsed_ms(started_at: float) -> int:
    """Whole milliseconds since a time.perf_counter() reading."""
    return max(0, int(round((time.perf_counter() - started_at) * 1000)))


def success_envelope(data: Any, *, started_at: float, credits: int) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    envelope = SuccessEnvelope(
        data=data,
        meta=EnvelopeMeta(credits=credits, processing_ms=elapsed_ms(started_at)),
    )
    return envelope.model_dump()


def error_envelope(code: Union[ErrorCode, str], message: str) -> Dict[str, Any]:
    value = code.value if isinstance(code, ErrorCode) else str(code)
    envelope = ErrorEnvelope(error=ErrorBody(code=value, message=message))
    return envelope.model_dump()
