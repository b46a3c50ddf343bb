"""
Upstream search client for SerpApi (Google engine).

GET {SERP_API_URL}?engine=google&q={query}&num={n}&api_key={key}

The provider's response shape stops here: organic_results are mapped into
SearchResult, tolerating missing optional fields. Every failure surfaces as
ConfigurationError (no credential) or UpstreamError.
"""
import os
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from podsearch.core.config import SERP_API_KEY_ENV
from podsearch.core.errors import ConfigurationError, UpstreamError
from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_upstream_search
from podsearch.models.responses import SearchResult

logger = get_logger(__name__)

DEFAULT_SERP_API_URL = "https://serpapi.com/search"
SEARCH_TIMEOUT_SECONDS = 10.0


def derive_source(link: str) -> str:
    """Host component of a URL, or the raw string when it has none."""
    try:
        host = urlparse(link).hostname
    except ValueError:
        host = None
    return host or link


def _text(item: Dict[str, Any], key: str) -> Optional[str]:
    """String field of a result; other types (e.g. news `source` objects) count as missing."""
    value = item.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_result(item: Dict[str, Any]) -> Optional[SearchResult]:
    """Map one SerpApi organic result; items without a link are dropped."""
    link = _text(item, "link")
    if link is None:
        return None

    fallback_source = derive_source(link)
    return SearchResult(
        title=_text(item, "title") or "",
        link=link,
        snippet=_text(item, "snippet") or "",
        display_link=_text(item, "displayed_link") or fallback_source,
        source=_text(item, "source") or fallback_source,
        date=_text(item, "date"),
    )


class SerpApiClient:
    """
    Async client for one SerpApi search per call.

    The API key is read from SERP_API_KEY on every call unless one is passed
    explicitly, so a missing credential is reported per request.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_SERP_API_URL,
        engine: str = "google",
        timeout_seconds: float = SEARCH_TIMEOUT_SECONDS,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.engine = engine
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._transport = transport

    def _resolve_api_key(self) -> str:
        raw_key = self._api_key if self._api_key is not None else os.getenv(SERP_API_KEY_ENV)
        if raw_key is None or not raw_key.strip():
            record_upstream_search("config_error")
            logger.error("serp_api_key_missing", variable=SERP_API_KEY_ENV)
            raise ConfigurationError(f"{SERP_API_KEY_ENV} is not configured")

        api_key = raw_key.strip()
        if api_key != raw_key:
            logger.warning(
                "serp_api_key_whitespace_trimmed",
                raw_length=len(raw_key),
                trimmed_length=len(api_key),
            )
        return api_key

    async def _get(self, params: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self._transport,
        ) as client:
            return await client.get(self.api_url, params=params)

    async def search(self, query: str, num_results: int) -> List[SearchResult]:
        """
        Run one search against the provider.

        Raises:
            ConfigurationError: SERP_API_KEY is missing or blank
            UpstreamError: timeout, network failure or non-2xx response
        """
        api_key = self._resolve_api_key()
        params = {
            "engine": self.engine,
            "q": query,
            "num": num_results,
            "api_key": api_key,
        }

        logger.info("serp_api_request", query=query, num_results=num_results)
        start = time.time()
        try:
            response = await self._get(params)
        except httpx.TimeoutException as exc:
            record_upstream_search("no_response", time.time() - start)
            logger.warning(
                "serp_api_timeout",
                query=query,
                timeout_seconds=self.timeout_seconds,
                error_type=type(exc).__name__,
            )
            raise UpstreamError("SERP API did not respond") from exc
        except httpx.RequestError as exc:
            record_upstream_search("no_response", time.time() - start)
            logger.warning(
                "serp_api_no_response",
                query=query,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamError("SERP API did not respond") from exc

        duration = time.time() - start

        if not response.is_success:
            record_upstream_search("http_error", duration)
            detail = self._error_detail(response)
            if response.status_code == 401:
                logger.error(
                    "serp_api_invalid_key",
                    status_code=response.status_code,
                    key_length=len(api_key),
                    error=detail,
                )
            else:
                logger.warning(
                    "serp_api_http_error",
                    query=query,
                    status_code=response.status_code,
                    error=detail,
                )
            raise UpstreamError(
                f"SERP API returned {response.status_code}: {detail or 'Unknown error'}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            record_upstream_search("http_error", duration)
            logger.warning("serp_api_invalid_json", query=query, status_code=response.status_code)
            raise UpstreamError(
                "SERP API returned an invalid response body",
                status_code=response.status_code,
            ) from exc

        record_upstream_search("success", duration)

        organic = data.get("organic_results") if isinstance(data, dict) else None
        if not isinstance(organic, list):
            if isinstance(data, dict) and data.get("error"):
                logger.info("serp_api_no_results", query=query, error=data.get("error"))
            organic = []

        results = []
        for item in organic:
            if not isinstance(item, dict):
                continue
            result = normalize_result(item)
            if result is not None:
                results.append(result)

        logger.info(
            "serp_api_success",
            query=query,
            results_count=len(results),
            latency_ms=int(duration * 1000),
        )
        return results

    @staticmethod
    def _error_detail(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return None
