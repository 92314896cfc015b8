import pytest

from instrument_lens.config import ServiceConfig
from instrument_lens.analysis_service.errors import ConfigurationError


def test_defaults_without_credentials():
    config = ServiceConfig.from_env({})

    assert config.provider is None
    assert config.has_credential is False
    assert config.analysis_model == "gpt-4.1-mini"
    assert config.formatter_model == "gpt-4.1-mini"
    assert config.analysis_max_tokens == 4096
    assert config.formatter_max_tokens == 2000
    assert config.timeout_seconds == 60.0
    assert config.max_retries == 1
    assert config.formatter_schema == "canonical"
    assert config.cors_origins == ("*",)
    assert config.port == 4000


def test_missing_credential_logs_warning(caplog):
    ServiceConfig.from_env({})
    assert "OPENAI_API_KEY" in caplog.text


def test_openai_preferred_over_gemini():
    config = ServiceConfig.from_env({"OPENAI_API_KEY": "sk-test", "GEMINI_API_KEY": "g-test"})

    assert config.provider == "openai"
    assert config.has_credential is True


def test_gemini_default_model():
    config = ServiceConfig.from_env({"GEMINI_API_KEY": "g-test"})

    assert config.provider == "gemini"
    assert config.analysis_model == "gemini-2.5-flash"


def test_overrides():
    config = ServiceConfig.from_env({
        "OPENAI_API_KEY": "sk-test",
        "ANALYSIS_MODEL": "gpt-4o",
        "FORMATTER_MODEL": "gpt-4o-mini",
        "ANALYSIS_MAX_TOKENS": "1024",
        "UPSTREAM_TIMEOUT_SECONDS": "7.5",
        "UPSTREAM_MAX_RETRIES": "0",
        "FORMATTER_SCHEMA": "Legacy",
        "CORS_ORIGINS": "http://localhost:5173, http://localhost:4000",
        "PORT": "8080",
    })

    assert config.analysis_model == "gpt-4o"
    assert config.formatter_model == "gpt-4o-mini"
    assert config.analysis_max_tokens == 1024
    assert config.timeout_seconds == 7.5
    assert config.max_retries == 0
    assert config.formatter_schema == "legacy"
    assert config.cors_origins == ("http://localhost:5173", "http://localhost:4000")
    assert config.port == 8080


@pytest.mark.parametrize("environ", [
    {"ANALYSIS_MAX_TOKENS": "lots"},
    {"UPSTREAM_TIMEOUT_SECONDS": "soon"},
    {"UPSTREAM_TIMEOUT_SECONDS": "0"},
    {"UPSTREAM_MAX_RETRIES": "-1"},
    {"FORMATTER_SCHEMA": "freeform"},
])
def test_invalid_settings(environ):
    with pytest.raises(ConfigurationError):
        ServiceConfig.from_env(environ)


@pytest.mark.parametrize("environ", [
    {"ANALYSIS_MAX_TOKENS": "0"},
    {"FORMATTER_MAX_TOKENS": "-5"},
    {"MAX_CONTENT_LENGTH_MB": "0"},
])
def test_non_positive_limits_rejected(environ):
    with pytest.raises(ConfigurationError) as exc:
        ServiceConfig.from_env(environ)
    assert "must be positive" in exc.value.message
