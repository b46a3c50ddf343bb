"""
Health check endpoints.
"""
import os

from fastapi import APIRouter, Request

from podsearch.core.config import SERP_API_KEY_ENV
from podsearch.core.logging import get_logger
from podsearch.models.responses import utc_timestamp

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    """
    return {
        "success": True,
        "status": "ok",
        "message": "API is running",
        "timestamp": utc_timestamp(),
    }


@router.get("/config")
async def config_health(request: Request):
    """
    Configuration diagnostics.

    Reports whether the search credential is present, its length and whether
    it carries stray whitespace, plus the AI backend state. Never returns
    any part of the key itself.
    """
    raw_key = os.getenv(SERP_API_KEY_ENV)
    has_key = bool(raw_key and raw_key.strip())
    orchestrator = request.app.state.orchestrator

    checks = {
        "hasSearchApiKey": has_key,
        "searchApiKeyLength": len(raw_key.strip()) if has_key else 0,
        "searchApiKeyHasWhitespace": bool(raw_key) and raw_key != raw_key.strip(),
        "aiBackend": orchestrator.analyzer.state.value,
        "cache": orchestrator.cache.stats(),
    }

    if not has_key:
        logger.warning("config_check_search_key_missing")

    return {
        "success": True,
        "status": "ok" if has_key else "degraded",
        "checks": checks,
        "message": "API key is loaded in environment" if has_key else "API key is NOT loaded in environment",
        "timestamp": utc_timestamp(),
    }
