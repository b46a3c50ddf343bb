"""
Process-wide settings loaded from the environment.

A `.env` file at the repository root is loaded first when present. Settings
are read once at startup and never mutated afterwards. The search provider
credential is the exception: the search client re-reads SERP_API_KEY on every
call, so it is not part of this model.
"""
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from podsearch.core.logging import get_logger

logger = get_logger(__name__)

env_path = Path(__file__).parent.parent.parent.parent / ".env"

SERP_API_KEY_ENV = "SERP_API_KEY"


class Settings(BaseModel):
    """Runtime configuration for the API process."""

    serp_api_url: str = "https://serpapi.com/search"
    serp_engine: str = "google"
    search_timeout_seconds: float = 10.0

    llm_api_base: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    llm_api_key: Optional[str] = None
    llm_model: str = "gemini-1.5-flash"
    llm_timeout_seconds: float = 15.0

    cache_ttl_seconds: int = Field(3600, gt=0)
    cache_check_period_seconds: int = Field(600, gt=0)
    cache_stats_interval_seconds: int = Field(300, gt=0)

    max_requests_per_minute: int = Field(30, gt=0)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    log_level: str = "INFO"
    log_json: bool = True


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("config_invalid_int", variable=name, value=raw, default=default)
        return default
    if value <= 0:
        logger.warning("config_non_positive_int", variable=name, value=value, default=default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_float", variable=name, value=raw, default=default)
        return default


def load_settings() -> Settings:
    """Build Settings from environment variables (after loading .env)."""
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("env_loaded", env_path=str(env_path))

    llm_api_key = (os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY") or "").strip()
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        serp_api_url=os.getenv("SERP_API_URL", "https://serpapi.com/search"),
        serp_engine=os.getenv("SERP_ENGINE", "google"),
        llm_api_base=os.getenv(
            "LLM_API_BASE", "https://generativelanguage.googleapis.com/v1beta/openai"
        ),
        llm_api_key=llm_api_key or None,
        llm_model=os.getenv("LLM_MODEL", "gemini-1.5-flash"),
        llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 15.0),
        cache_ttl_seconds=_env_int("CACHE_TTL", 3600),
        cache_check_period_seconds=_env_int("CACHE_CHECK_PERIOD", 600),
        cache_stats_interval_seconds=_env_int("CACHE_STATS_INTERVAL", 300),
        max_requests_per_minute=_env_int("MAX_REQUESTS_PER_MINUTE", 30),
        cors_origins=origins or ["*"],
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "true").lower() == "true",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
