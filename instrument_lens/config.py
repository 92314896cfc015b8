"""
Service configuration.

All settings are read once from the process environment (and `.env`, via
python-dotenv) when the gateway starts, then handed to `create_app`. Nothing
in the request path reads `os.environ` directly.
"""

import logging
import os
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from instrument_lens.analysis_service.errors import ConfigurationError

# --- DEFAULTS ---
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_ANALYSIS_MAX_TOKENS = 4096
DEFAULT_FORMATTER_MAX_TOKENS = 2000
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 1
DEFAULT_PORT = 4000
DEFAULT_MAX_CONTENT_LENGTH_MB = 50

FORMATTER_SCHEMAS = ("canonical", "legacy")


class ServiceConfig:
    """
    Explicit configuration for the analysis proxy.

    Args:
        openai_api_key (str, optional): Credential for the OpenAI backend.
        gemini_api_key (str, optional): Credential for the Gemini backend.
            Only used when no OpenAI key is set.
        analysis_model (str, optional): Model for the image analysis call.
            Defaults per provider.
        formatter_model (str, optional): Model for the reformat call.
            Defaults to the analysis model.
        formatter_schema (str): "canonical" or "legacy" target schema for the
            reformat call.
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_base_url: Optional[str] = None,
        analysis_model: Optional[str] = None,
        formatter_model: Optional[str] = None,
        analysis_max_tokens: int = DEFAULT_ANALYSIS_MAX_TOKENS,
        formatter_max_tokens: int = DEFAULT_FORMATTER_MAX_TOKENS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        formatter_schema: str = "canonical",
        cors_origins: Tuple[str, ...] = ("*",),
        max_content_length_mb: int = DEFAULT_MAX_CONTENT_LENGTH_MB,
        port: int = DEFAULT_PORT,
    ):
        if formatter_schema not in FORMATTER_SCHEMAS:
            raise ConfigurationError(
                f"FORMATTER_SCHEMA must be one of {', '.join(FORMATTER_SCHEMAS)}, got {formatter_schema!r}"
            )
        if timeout_seconds <= 0:
            raise ConfigurationError("UPSTREAM_TIMEOUT_SECONDS must be positive")
        if max_retries < 0:
            raise ConfigurationError("UPSTREAM_MAX_RETRIES must not be negative")
        for name, value in (
            ("ANALYSIS_MAX_TOKENS", analysis_max_tokens),
            ("FORMATTER_MAX_TOKENS", formatter_max_tokens),
            ("MAX_CONTENT_LENGTH_MB", max_content_length_mb),
        ):
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive")

        self.openai_api_key = openai_api_key or None
        self.gemini_api_key = gemini_api_key or None
        self.openai_base_url = openai_base_url or None
        self.analysis_max_tokens = analysis_max_tokens
        self.formatter_max_tokens = formatter_max_tokens
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.formatter_schema = formatter_schema
        self.cors_origins = tuple(cors_origins)
        self.max_content_length_mb = max_content_length_mb
        self.port = port

        default_model = DEFAULT_GEMINI_MODEL if self.provider == "gemini" else DEFAULT_OPENAI_MODEL
        self.analysis_model = analysis_model or default_model
        self.formatter_model = formatter_model or self.analysis_model

    @property
    def provider(self) -> Optional[str]:
        """Which backend will serve requests: "openai", "gemini", or None."""
        if self.openai_api_key:
            return "openai"
        if self.gemini_api_key:
            return "gemini"
        return None

    @property
    def has_credential(self) -> bool:
        return self.provider is not None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        """
        Build the configuration from environment variables.

        When `environ` is omitted, `.env` is loaded first and `os.environ` is used.

        Raises:
            ConfigurationError: A numeric or enumerated setting is malformed.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        origins = environ.get("CORS_ORIGINS", "*")

        config = cls(
            openai_api_key=environ.get("OPENAI_API_KEY"),
            gemini_api_key=environ.get("GEMINI_API_KEY"),
            openai_base_url=environ.get("OPENAI_BASE_URL"),
            analysis_model=environ.get("ANALYSIS_MODEL"),
            formatter_model=environ.get("FORMATTER_MODEL"),
            analysis_max_tokens=_int_setting(environ, "ANALYSIS_MAX_TOKENS", DEFAULT_ANALYSIS_MAX_TOKENS),
            formatter_max_tokens=_int_setting(environ, "FORMATTER_MAX_TOKENS", DEFAULT_FORMATTER_MAX_TOKENS),
            timeout_seconds=_float_setting(environ, "UPSTREAM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            max_retries=_int_setting(environ, "UPSTREAM_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            formatter_schema=environ.get("FORMATTER_SCHEMA", "canonical").strip().lower(),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            max_content_length_mb=_int_setting(environ, "MAX_CONTENT_LENGTH_MB", DEFAULT_MAX_CONTENT_LENGTH_MB),
            port=_int_setting(environ, "PORT", DEFAULT_PORT),
        )

        if not config.has_credential:
            logging.warning(
                "Neither OPENAI_API_KEY nor GEMINI_API_KEY is set. "
                "Every /analyze call will fail until one is configured in .env."
            )
        return config


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _float_setting(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
