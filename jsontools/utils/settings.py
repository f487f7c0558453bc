"""
jsontools/utils/settings.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single source of truth* for runtime configuration
of the JSON Transform API.

It is responsible for:
- Defining all supported configuration fields (via Pydantic BaseSettings)
- Loading default values from parameters/parameters.yaml
- Overriding defaults with environment variables (JSON_TRANSFORM_*)
- Exposing a cached, fully-validated Settings object to the application

LOAD & PRECEDENCE MODEL
-----------------------
Configuration is loaded in the following order (last wins):

1) Field defaults declared on Settings
2) YAML defaults from:
       parameters/parameters.yaml
3) Environment variables:
       JSON_TRANSFORM_*

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Request handling or validation of request payloads
- Logging configuration (see jsontools/utils/logging_setup.py)
- Any data transformation logic

DESIGN INTENT
-------------
- All runtime-configurable behavior MUST be declared here
- Adding a new config option requires:
    1) Adding a field to Settings
    2) Optionally documenting it in parameters/parameters.yaml
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Set

import structlog
import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"

# 5 MB; transform payloads above this are rejected before parsing
DEFAULT_MAX_PAYLOAD_BYTES = 5 * 1024 * 1024


class Settings(BaseSettings):
    """
    Runtime settings for the JSON Transform API.

    Load order / precedence:
        1) YAML defaults (parameters/parameters.yaml)
        2) Environment variables (JSON_TRANSFORM_*), overriding YAML
    """

    model_config = SettingsConfigDict(
        env_prefix="JSON_TRANSFORM_",
        extra="ignore",
    )

    # Service metadata
    service_name: str = "json-transform"
    version: str = "1.0.1"
    environment: str = "local"
    log_level: str = "INFO"

    # Serving
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Request limits and pricing
    max_payload_bytes: int = Field(default=DEFAULT_MAX_PAYLOAD_BYTES, gt=0)
    credits_per_request: int = Field(default=1, ge=0)

    # Format defaults
    xml_root_element: str = Field(default="root", min_length=1)

    # Response JSON normalization
    preserve_container_keys: Set[str] = Field(
        default_factory=lambda: {"result", "value", "from", "to", "item"},
        description=(
            "Keys holding caller data. Their contents are returned verbatim "
            "(never camelCased) during response normalization."
        ),
    )

    # Schema validator cache
    enable_schema_cache: bool = Field(
        default=False,
        description="If true, compiled JSON Schema validators are reused across requests.",
    )
    schema_cache_size: int = Field(default=128, ge=1)


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    """
    Load base configuration from parameters/parameters.yaml.

    Cached so the file is read at most once per process.
    """
    if not PARAMETERS_PATH.exists():
        logger.warning("parameters_yaml_missing", expected=str(PARAMETERS_PATH))
        return {}

    try:
        with PARAMETERS_PATH.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("parameters_yaml_load_error", path=str(PARAMETERS_PATH), error=str(exc))
        return {}

    if not isinstance(data, dict):
        logger.warning(
            "parameters_yaml_not_dict",
            path=str(PARAMETERS_PATH),
            type=type(data).__name__,
        )
        return {}

    logger.info("parameters_yaml_loaded", path=str(PARAMETERS_PATH))
    return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Construct and return the final validated Settings object.

    This function is:
    - Cached (singleton per process)
    - The ONLY supported way to access runtime settings

    Any code needing configuration should call this function,
    not instantiate Settings() directly.
    """
    # 1) YAML defaults
    yaml_data = _load_yaml_parameters()

    # 2) env overrides (partial)
    try:
        env_settings = Settings()
        env_data = env_settings.model_dump(exclude_unset=True)
    except ValidationError as exc:
        logger.warning("settings_env_validation_error", errors=exc.errors())
        env_data = {}

    # 3) merge + final validation
    merged: Dict[str, Any] = {**yaml_data, **env_data}
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:
        logger.warning("settings_yaml_validation_error", errors=exc.errors())
        settings = Settings.model_validate(env_data)

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        version=settings.version,
        max_payload_bytes=settings.max_payload_bytes,
        credits_per_request=settings.credits_per_request,
        xml_root_element=settings.xml_root_element,
        preserve_container_keys=sorted(settings.preserve_container_keys),
        enable_schema_cache=settings.enable_schema_cache,
    )

    return settings
