"""
jsontools/operations/errors.py

Error taxonomy shared by every operation.

Each component raises a subclass of OperationError. The subclass fixes the
public error code, so the HTTP layer maps failures by origin instead of by
inspecting message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_FORMAT = "INVALID_FORMAT"
    UNSUPPORTED_CONVERSION = "UNSUPPORTED_CONVERSION"
    PARSE_ERROR = "PARSE_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    QUERY_ERROR = "QUERY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"


class OperationError(Exception):
    """Base class for expected, request-local failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParseError(OperationError):
    """Source data is malformed for its declared format."""

    code = ErrorCode.PARSE_ERROR


class SerializeError(OperationError):
    """The tree cannot be represented in the requested output format."""

    code = ErrorCode.UNSUPPORTED_CONVERSION


class CircularReferenceError(SerializeError):
    code = ErrorCode.CIRCULAR_REFERENCE


class FlattenError(OperationError):
    """Flat keys describe conflicting structures."""

    code = ErrorCode.INVALID_INPUT


class QueryError(OperationError):
    code = ErrorCode.QUERY_ERROR


class SchemaDocumentError(OperationError):
    """The JSON Schema itself is malformed (not a failed validation)."""

    code = ErrorCode.VALIDATION_ERROR
