"""
Unit tests for environment-driven settings.
"""
import pytest

from podsearch.core.config import load_settings

ENV_VARS = [
    "SERP_API_URL",
    "LLM_API_KEY",
    "GEMINI_API_KEY",
    "LLM_MODEL",
    "CACHE_TTL",
    "CACHE_CHECK_PERIOD",
    "MAX_REQUESTS_PER_MINUTE",
    "CORS_ORIGINS",
    "LOG_JSON",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.serp_api_url == "https://serpapi.com/search"
    assert settings.cache_ttl_seconds == 3600
    assert settings.cache_check_period_seconds == 600
    assert settings.max_requests_per_minute == 30
    assert settings.cors_origins == ["*"]
    assert settings.llm_api_key is None


def test_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_TTL", "120")
    monkeypatch.setenv("MAX_REQUESTS_PER_MINUTE", "5")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("LOG_JSON", "false")

    settings = load_settings()

    assert settings.cache_ttl_seconds == 120
    assert settings.max_requests_per_minute == 5
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.log_json is False


@pytest.mark.parametrize("raw", ["abc", "0", "-10"])
def test_invalid_integers_fall_back_to_default(monkeypatch, raw):
    monkeypatch.setenv("CACHE_TTL", raw)

    assert load_settings().cache_ttl_seconds == 3600


def test_llm_key_from_either_variable(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "  gemini-key ")
    assert load_settings().llm_api_key == "gemini-key"

    monkeypatch.setenv("LLM_API_KEY", "primary-key")
    assert load_settings().llm_api_key == "primary-key"
