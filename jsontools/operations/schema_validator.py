"""
jsontools/operations/schema_validator.py

WHAT THIS FILE IS FOR
---------------------
Validation of a Tree against a caller-supplied JSON Schema document.

BEHAVIOR
--------
- The draft is picked from the schema's "$schema" (Draft 2020-12 by default)
- The schema document itself is checked first; a malformed schema or an
  unresolvable $ref raises SchemaDocumentError
- "format" keywords are enforced (jsonschema.FormatChecker)
- Every violation is reported, sorted by instance path, as
  {path (JSON pointer, "/" for the root), message, keyword}
- A failed validation is a normal result (valid=False), never an exception

OPTIONAL CACHE
--------------
SchemaCache keeps compiled validators keyed by the SHA-256 of the schema's
canonical JSON text. It is injected by the caller and off by default; since
each schema value is immutable per call, entries never need invalidation.
"""

from __future__ import annotations

import hashlib
import json
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for
from referencing.exceptions import Unresolvable

from jsontools.operations.errors import SchemaDocumentError

logger = structlog.get_logger(__name__)


@dataclass
class ValidationIssue:
    path: str
    message: str
    keyword: str


@dataclass
class ValidationResult:
    valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)


def schema_fingerprint(schema: Dict[str, Any]) -> str:
    canonical = json.dumps(schema, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class SchemaCache:
    """Thread-safe LRU of compiled validators."""

    def __init__(self, maxsize: int = 128) -> None:
        self.maxsize = maxsize
        self._entries: "OrderedDict[str, Validator]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Validator]:
        with self._lock:
            validator = self._entries.get(key)
            if validator is not None:
                self._entries.move_to_end(key)
            return validator

    def put(self, key: str, validator: Validator) -> None:
        with self._lock:
            self._entries[key] = validator
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _pointer(segments: Any) -> str:
    parts = [str(s).replace("~", "~0").replace("/", "~1") for s in segments]
    return "/" + "/".join(parts)


class SchemaValidator:
    def __init__(self, cache: Optional[SchemaCache] = None) -> None:
        self.cache = cache

    def compile(self, schema: Dict[str, Any]) -> Validator:
        key = schema_fingerprint(schema) if self.cache is not None else None
        if key is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        validator_cls = validator_for(schema, default=Draft202012Validator)
        try:
            validator_cls.check_schema(schema)
        except SchemaError as exc:
            raise SchemaDocumentError(f"Invalid JSON Schema: {exc.message}") from exc

        validator = validator_cls(schema, format_checker=FormatChecker())
        if key is not None:
            self.cache.put(key, validator)
        return validator

    def validate(self, data: Any, schema: Dict[str, Any]) -> ValidationResult:
        validator = self.compile(schema)

        try:
            raw_errors = list(validator.iter_errors(data))
        except Unresolvable as exc:
            raise SchemaDocumentError(f"Invalid JSON Schema: unresolvable reference ({exc})") from exc

        issues = [
            ValidationIssue(
                path=_pointer(err.absolute_path),
                message=err.message,
                keyword=str(err.validator),
            )
            for err in raw_errors
        ]
        issues.sort(key=lambda issue: issue.path)

        logger.debug("schema_validated", valid=not issues, error_count=len(issues))
        return ValidationResult(valid=not issues, errors=issues)
