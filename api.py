"""
api.py

WHAT THIS FILE IS FOR
---------------------
This module defines the FastAPI application entrypoint for the
JSON Transform API.

It is responsible for:
- Creating the FastAPI app instance (title/version/description)
- Registering middleware for:
    - CORS
    - Correlation ID propagation (X-Correlation-Id)
    - Request completion logging
- Rendering every failure through the standard error envelope:
    {success: false, error: {code, message}}
- Registering exception handlers for:
    - RequestValidationError (400 INVALID_INPUT)
    - HTTPException (404 NOT_FOUND, 405 METHOD_NOT_ALLOWED, handler errors)
    - Exception (500 INTERNAL_ERROR, no internal details leaked)
- Exposing HTTP endpoints:
    - GET  /, /health, /healthz, /mcp-tool.json
    - POST /api/transform, /api/flatten, /api/unflatten,
           /api/query, /api/diff, /api/validate

REQUEST/RESPONSE CONTRACT RULES
-------------------------------
- Request payloads are validated by the Pydantic models in schemas/input_schema.py
- Successful responses are {success: true, data, meta: {credits, processingMs}}
- Response keys are camelCase; caller data under preserved containers
  (result, value, from, to, item) is returned verbatim

DESIGN INTENT
-------------
This file contains ONLY the HTTP layer:
- routing
- middleware
- exception handling
- response formatting / normalization

Transformation logic lives in:
- jsontools/operations/*
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, NoReturn

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jsontools.operations.diff_engine import compute_diff
from jsontools.operations.errors import ErrorCode, OperationError
from jsontools.operations.flattener import flatten, unflatten
from jsontools.operations.format_transformer import (
    SUPPORTED_FORMATS,
    SerializeOptions,
    byte_size,
    is_supported_format,
    parse,
    serialize,
)
from jsontools.operations.query_engine import execute_query
from jsontools.operations.schema_validator import SchemaCache, SchemaValidator
from jsontools.utils.json_naming_converter import convert_keys_snake_to_camel
from jsontools.utils.logging_setup import configure_logging
from jsontools.utils.response_envelope import error_envelope, status_for_code, success_envelope
from jsontools.utils.settings import get_settings
from schemas.input_schema import (
    DiffRequest,
    FlattenRequest,
    QueryRequest,
    TransformRequest,
    UnflattenRequest,
    ValidateRequest,
)
from schemas.output_schema import (
    DiffData,
    DiffSummaryData,
    FlattenData,
    QueryData,
    TransformData,
    UnflattenData,
    ValidateData,
    ValidationIssueData,
)

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger(__name__)

schema_validator = SchemaValidator(
    cache=SchemaCache(settings.schema_cache_size) if settings.enable_schema_cache else None
)

STARTED_AT = time.monotonic()
CORRELATION_HEADER = "X-Correlation-Id"
FORMATS_HINT = ", ".join(sorted(SUPPORTED_FORMATS))

app = FastAPI(
    title="JSON Transform API",
    version=settings.version,
    description="Convert JSON to CSV, XML, YAML, TOML, and back, in one API call.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", CORRELATION_HEADER],
)

ENDPOINTS = [
    {"method": "POST", "path": "/api/transform", "description": "Convert data between formats (JSON, CSV, XML, YAML, TOML)"},
    {"method": "POST", "path": "/api/flatten", "description": "Flatten nested JSON into dot-notation keys"},
    {"method": "POST", "path": "/api/unflatten", "description": "Expand dot-notation keys back into nested objects"},
    {"method": "POST", "path": "/api/query", "description": "Query JSON data using JMESPath expressions"},
    {"method": "POST", "path": "/api/diff", "description": "Compare two JSON objects and return differences"},
    {"method": "POST", "path": "/api/validate", "description": "Validate JSON data against a JSON Schema"},
]


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_or_create_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER)
    return incoming.strip() if incoming and incoming.strip() else f"corr_{uuid.uuid4().hex}"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or f"corr_{uuid.uuid4().hex}"


def _std_error(*, code: str, message: str, correlation_id: str, http_status: int) -> JSONResponse:
    return JSONResponse(
        status_code=http_status,
        content=error_envelope(code, message),
        headers={CORRELATION_HEADER: correlation_id},
    )


def _fail(code: ErrorCode, message: str) -> NoReturn:
    raise HTTPException(
        status_code=status_for_code(code),
        detail={"code": code.value, "message": message},
    )


def _respond(data: Any, started_at: float) -> JSONResponse:
    envelope = success_envelope(data, started_at=started_at, credits=settings.credits_per_request)
    payload = convert_keys_snake_to_camel(
        envelope,
        preserve_container_keys=settings.preserve_container_keys,
    )
    return JSONResponse(status_code=200, content=payload)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    err_type = first.get("type", "")
    field = ".".join(str(x) for x in first.get("loc", []) if x != "body")

    if err_type == "json_invalid":
        return "Request body must be valid JSON"
    if not field:
        return "Request body must be a JSON object"
    if err_type == "missing":
        return f"Missing required field: {field}"
    return f"{field}: {first.get('msg', 'invalid value')}"


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = _get_or_create_correlation_id(request)
    request.state.correlation_id = correlation_id
    started_at = time.perf_counter()

    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    try:
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started_at) * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id")


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = _validation_message(exc)
    logger.info("request_validation_failed", path=request.url.path, error_count=len(exc.errors()))
    return _std_error(
        code=ErrorCode.INVALID_INPUT.value,
        message=message,
        correlation_id=_correlation_id(request),
        http_status=400,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict) and exc.detail.get("code"):
        code = str(exc.detail["code"])
        message = str(exc.detail.get("message", ""))
    elif exc.status_code == 404:
        code, message = ErrorCode.NOT_FOUND.value, "Endpoint not found"
    elif exc.status_code == 405:
        code, message = ErrorCode.METHOD_NOT_ALLOWED.value, "Method not allowed"
    elif exc.status_code >= 500:
        code, message = ErrorCode.INTERNAL_ERROR.value, "An unexpected error occurred"
    else:
        code, message = ErrorCode.INVALID_INPUT.value, str(exc.detail)

    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        code=code,
    )
    return _std_error(
        code=code,
        message=message,
        correlation_id=_correlation_id(request),
        http_status=exc.status_code,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return _std_error(
        code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
        correlation_id=_correlation_id(request),
        http_status=500,
    )


# -------------------------------------------------------------------
# Info endpoints
# -------------------------------------------------------------------
@app.get("/")
async def service_info() -> Dict[str, Any]:
    return {
        "name": settings.service_name,
        "version": settings.version,
        "description": "Convert JSON to CSV, XML, YAML, TOML, and back, in one API call.",
        "pricing": {"credits": settings.credits_per_request, "usd": "$0.01"},
        "endpoints": ENDPOINTS,
        "docs": "/docs",
        "health": "/health",
        "mcp": "/mcp-tool.json",
    }


@app.get("/healthz")
@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "service": settings.service_name,
        "uptime": int(time.monotonic() - STARTED_AT),
        "version": settings.version,
    }


@app.get("/mcp-tool.json")
async def mcp_tool() -> Dict[str, Any]:
    formats = sorted(SUPPORTED_FORMATS)
    return {
        "name": "json_transform",
        "description": (
            "Convert data between JSON, CSV, XML, YAML, and TOML formats. Also supports flattening "
            "nested objects, querying with JMESPath, comparing JSON objects (diff), and validating "
            "against JSON Schema."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["transform", "flatten", "unflatten", "query", "diff", "validate"],
                    "description": "The operation to perform",
                },
                "input": {"type": "string", "enum": formats, "description": "Input format (for transform action)"},
                "output": {"type": "string", "enum": formats, "description": "Output format (for transform action)"},
                "data": {"description": "The data to process"},
            },
            "required": ["action"],
        },
        "endpoint": "POST /api/{action}",
        "pricing": {"credits": settings.credits_per_request, "usd": 0.01},
    }


# -------------------------------------------------------------------
# Operation endpoints
# -------------------------------------------------------------------
@app.post("/api/transform")
def transform_endpoint(payload: TransformRequest) -> JSONResponse:
    started_at = time.perf_counter()
    input_format, output_format, data = payload.input_format, payload.output_format, payload.data

    if data is None:
        _fail(ErrorCode.INVALID_INPUT, "Missing required field: data")
    if not is_supported_format(input_format):
        _fail(ErrorCode.INVALID_FORMAT, f"Invalid input format: {input_format}. Supported: {FORMATS_HINT}")
    if not is_supported_format(output_format):
        _fail(ErrorCode.INVALID_FORMAT, f"Invalid output format: {output_format}. Supported: {FORMATS_HINT}")
    if input_format == output_format:
        _fail(ErrorCode.UNSUPPORTED_CONVERSION, f"Input and output formats are the same: {input_format}")
    if input_format != "json" and not isinstance(data, str):
        _fail(ErrorCode.INVALID_INPUT, f"{input_format.upper()} input must be a string")

    source = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    input_size = byte_size(source)
    if input_size > settings.max_payload_bytes:
        logger.info("transform_payload_too_large", input_size=input_size, limit=settings.max_payload_bytes)
        _fail(ErrorCode.PAYLOAD_TOO_LARGE, f"Data exceeds {settings.max_payload_bytes // (1024 * 1024)}MB limit")

    opts = payload.options
    options = SerializeOptions(
        pretty=opts.pretty,
        indent=opts.indent,
        delimiter=opts.delimiter,
        headers=opts.headers,
        root_element=opts.root_element or settings.xml_root_element,
        flatten_arrays=opts.flatten_arrays,
        flatten_depth=opts.flatten_depth,
    )

    try:
        tree = parse(data, input_format)
        result = serialize(tree, output_format, options)
    except OperationError as exc:
        logger.info("transform_failed", input_format=input_format, output_format=output_format, code=exc.code.value)
        _fail(exc.code, exc.message)

    logger.info("transform_completed", input_format=input_format, output_format=output_format, input_size=input_size)
    return _respond(
        TransformData(
            result=result,
            input_format=input_format,
            output_format=output_format,
            input_size=input_size,
            output_size=byte_size(result),
        ),
        started_at,
    )


@app.post("/api/flatten")
def flatten_endpoint(payload: FlattenRequest) -> JSONResponse:
    started_at = time.perf_counter()
    outcome = flatten(payload.data, delimiter=payload.delimiter, max_depth=payload.max_depth)
    return _respond(
        FlattenData(
            result=outcome.result,
            keys_flattened=outcome.keys_flattened,
            original_depth=outcome.original_depth,
        ),
        started_at,
    )


@app.post("/api/unflatten")
def unflatten_endpoint(payload: UnflattenRequest) -> JSONResponse:
    started_at = time.perf_counter()
    try:
        outcome = unflatten(payload.data, delimiter=payload.delimiter)
    except OperationError as exc:
        _fail(exc.code, exc.message)
    return _respond(UnflattenData(result=outcome.result, keys_expanded=outcome.keys_expanded), started_at)


@app.post("/api/query")
def query_endpoint(payload: QueryRequest) -> JSONResponse:
    started_at = time.perf_counter()
    if payload.data is None:
        _fail(ErrorCode.INVALID_INPUT, "Missing required field: data")

    try:
        outcome = execute_query(payload.data, payload.query)
    except OperationError as exc:
        _fail(exc.code, exc.message)

    return _respond(
        QueryData(result=outcome.result, query=outcome.query, match_count=outcome.match_count),
        started_at,
    )


@app.post("/api/diff")
def diff_endpoint(payload: DiffRequest) -> JSONResponse:
    started_at = time.perf_counter()
    outcome = compute_diff(payload.original, payload.modified)
    summary = outcome.summary
    return _respond(
        DiffData(
            changes=[change.to_dict() for change in outcome.changes],
            summary=DiffSummaryData(
                added=summary.added,
                removed=summary.removed,
                changed=summary.changed,
                unchanged=summary.unchanged,
            ),
        ),
        started_at,
    )


@app.post("/api/validate")
def validate_endpoint(payload: ValidateRequest) -> JSONResponse:
    started_at = time.perf_counter()
    try:
        outcome = schema_validator.validate(payload.data, payload.json_schema)
    except OperationError as exc:
        _fail(exc.code, exc.message)

    return _respond(
        ValidateData(
            valid=outcome.valid,
            errors=[
                ValidationIssueData(path=issue.path, message=issue.message, keyword=issue.keyword)
                for issue in outcome.errors
            ],
        ),
        started_at,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
