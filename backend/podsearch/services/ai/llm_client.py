"""
Async client for the generative model backend.

Uses httpx against an OpenAI-compatible /chat/completions API rather than a
vendor SDK. The defaults point at Gemini's OpenAI-compatible endpoint.

Environment configuration (see podsearch.core.config):
- LLM_API_BASE: Base URL for the API
- LLM_API_KEY (or GEMINI_API_KEY): API key / bearer token
- LLM_MODEL: Model name (default: gemini-1.5-flash)
- LLM_TIMEOUT_SECONDS: Request timeout in seconds (default: 15.0)
"""
import time
from typing import Any, Dict, Optional

import httpx

from podsearch.core.errors import LLMError
from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_llm_error, record_llm_request

logger = get_logger(__name__)


class LLMClient:
    """Async HTTP client for single-prompt completions."""

    def __init__(
        self,
        api_base: str,
        api_key: Optional[str],
        model: str,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def open(self) -> None:
        """Create the pooled HTTP client. Requires an API key."""
        if not self.api_key:
            raise LLMError("LLM API key not configured", reason="missing_api_key")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_base,
                timeout=self.timeout_seconds,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
            logger.info("llm_client_opened", api_base=self.api_base, model=self.model)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("llm_client_closed")

    async def complete(
        self,
        agent: str,
        prompt: str,
        max_tokens: int = 512,
        temperature: float = 0.4,
    ) -> str:
        """
        Send one prompt and return the text of the first choice.

        Args:
            agent: Logical caller name ("intent", "suggestions") for metrics
            prompt: Natural-language prompt
            max_tokens: Max tokens for completion
            temperature: Sampling temperature

        Raises:
            LLMError on transport failure, non-2xx status or malformed body.
        """
        if self._client is None:
            record_llm_error(agent, "not_initialized")
            raise LLMError("LLM client is not initialized", reason="not_initialized")

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        start = time.time()
        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as exc:
            record_llm_error(agent, "timeout")
            logger.warning(
                "llm_timeout",
                agent=agent,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise LLMError("LLM request timed out", reason="timeout") from exc
        except httpx.HTTPError as exc:
            record_llm_error(agent, "http_error")
            logger.warning(
                "llm_http_error",
                agent=agent,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise LLMError(f"LLM request failed: {exc}", reason="http_error") from exc
        finally:
            # Latency is recorded for failed calls too.
            record_llm_request(agent, self.model, time.time() - start)

        if not response.is_success:
            record_llm_error(agent, f"status_{response.status_code}")
            logger.warning(
                "llm_bad_status",
                agent=agent,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise LLMError(
                f"LLM returned status {response.status_code}",
                reason="bad_status",
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            record_llm_error(agent, "malformed_response")
            logger.warning("llm_malformed_response", agent=agent, body=response.text[:500])
            raise LLMError("LLM response had no message content", reason="malformed_response") from exc

        if not isinstance(content, str):
            record_llm_error(agent, "malformed_response")
            raise LLMError("LLM message content is not text", reason="malformed_response")

        usage = data.get("usage") or {}
        logger.debug(
            "llm_completion_received",
            agent=agent,
            model=self.model,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
        return content
