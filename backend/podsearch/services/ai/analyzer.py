"""
Query intent analyzer.

Responsibilities:
- Expand one search query into up to three sharper queries plus related
  topics using the generative backend
- Suggest research questions for a podcast topic

It never raises. Every failure degrades to the original query:
- backend disabled or not ready yet  -> strategy "basic"
- model call failed                  -> strategy "fallback"
- response not usable                -> strategy "parse-error"
"""
import json
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from podsearch.core.errors import LLMError
from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_search_strategy
from podsearch.services.ai.llm_client import LLMClient
from podsearch.services.ai.schema import (
    MAX_ADDITIONAL_TOPICS,
    MAX_ENHANCED_QUERIES,
    AnalysisParseError,
    SearchIntentAnalysis,
    SearchStrategy,
    validate_analysis_payload,
)

logger = get_logger(__name__)

MAX_SUGGESTIONS = 5
DEFAULT_REASONING = "AI analysis completed"


class BackendState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISABLED = "disabled"
    FAILED = "failed"


def extract_balanced(text: str, open_char: str = "{", close_char: str = "}") -> Optional[str]:
    """
    Return the first balanced open_char...close_char substring of text.

    Delimiters inside JSON string literals are ignored. A start position
    that never balances is skipped in favour of the next one.
    """
    start = text.find(open_char)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == open_char:
                depth += 1
            elif char == close_char:
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find(open_char, start + 1)
    return None


def build_analysis_prompt(
    original_query: str,
    podcast_description: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    year = datetime.now(timezone.utc).year
    description_line = (
        f"Description: {podcast_description}" if podcast_description else "No description provided"
    )
    context_line = f"Additional Context: {context}" if context else ""

    return f"""You are an intelligent search assistant for a podcast generator. Your job is to analyze user search queries and enhance them to get the most relevant, comprehensive, and up-to-date information.

ORIGINAL QUERY: "{original_query}"

PODCAST CONTEXT:
{description_line}
{context_line}

YOUR TASK:
1. Restate the search intent in one sentence
2. Generate 2-3 enhanced search queries that will retrieve more relevant information
3. Identify up to 5 additional related topics that would enrich the podcast content
4. Consider current events, recent developments, and diverse perspectives

REQUIREMENTS:
- Enhanced queries should be specific and targeted
- Include time-sensitive terms if the topic is current (e.g., "{year}", "latest", "recent")
- Consider different angles: news, analysis, statistics, expert opinions
- Keep queries concise and searchable

RESPONSE FORMAT (JSON):
{{
  "enhancedQueries": ["query1", "query2", "query3"],
  "additionalTopics": ["topic1", "topic2"],
  "reasoning": "The search intent and a brief explanation of your strategy"
}}

Respond ONLY with valid JSON, no additional text."""


def build_suggestions_prompt(topic: str) -> str:
    return f"""Generate {MAX_SUGGESTIONS} specific research questions or topics to explore for a podcast about: "{topic}"

Return as a JSON array of strings. Example: ["question1", "question2", ...]

Respond ONLY with valid JSON."""


def parse_analysis(text: str) -> SearchIntentAnalysis:
    """
    Turn a model response into an ai-enhanced analysis.

    Raises:
        AnalysisParseError when no usable JSON object is found.
    """
    block = extract_balanced(text, "{", "}")
    if block is None:
        raise AnalysisParseError("No JSON object found in response", raw_output=text)

    try:
        decoded = json.loads(block)
    except json.JSONDecodeError as exc:
        raise AnalysisParseError(f"Invalid JSON in response: {exc}", raw_output=text) from exc

    if not isinstance(decoded, dict):
        raise AnalysisParseError("Response JSON is not an object", raw_output=text)

    payload = validate_analysis_payload(decoded)
    return SearchIntentAnalysis(
        enhanced_queries=payload.enhanced_queries[:MAX_ENHANCED_QUERIES],
        additional_topics=payload.additional_topics[:MAX_ADDITIONAL_TOPICS],
        strategy=SearchStrategy.AI_ENHANCED,
        reasoning=payload.reasoning or DEFAULT_REASONING,
    )


class QueryIntentAnalyzer:
    """
    Generative query expansion with deterministic fallbacks.

    The backend must be brought up with `initialize()` before analyses use
    it; until then (or when no key is configured) every analysis is "basic".
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self._llm_client = llm_client
        self._state = BackendState.UNINITIALIZED

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is BackendState.READY

    async def initialize(self) -> BackendState:
        if self._llm_client is None or not self._llm_client.api_key:
            self._state = BackendState.DISABLED
            logger.warning(
                "ai_backend_disabled",
                message="LLM_API_KEY / GEMINI_API_KEY not set. AI query enhancement is off.",
            )
            return self._state

        self._state = BackendState.INITIALIZING
        try:
            await self._llm_client.open()
        except Exception as exc:
            self._state = BackendState.FAILED
            logger.error(
                "ai_backend_initialization_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return self._state

        self._state = BackendState.READY
        logger.info("ai_backend_ready", model=self._llm_client.model)
        return self._state

    async def shutdown(self) -> None:
        if self._llm_client is not None:
            await self._llm_client.close()
        if self._state is not BackendState.DISABLED:
            self._state = BackendState.UNINITIALIZED

    async def analyze(
        self,
        original_query: str,
        podcast_description: Optional[str] = None,
        context: Optional[str] = None,
    ) -> SearchIntentAnalysis:
        """Analyze a query. Always returns an analysis with at least one query."""
        if not self.is_ready:
            logger.info("intent_analysis_skipped", state=self._state.value)
            return self._degraded(original_query, SearchStrategy.BASIC)

        prompt = build_analysis_prompt(original_query, podcast_description, context)
        try:
            text = await self._llm_client.complete(agent="intent", prompt=prompt)
        except LLMError as exc:
            logger.warning(
                "intent_analysis_failed",
                query=original_query,
                error=str(exc),
                reason=exc.reason,
            )
            return self._degraded(original_query, SearchStrategy.FALLBACK)
        except Exception as exc:
            logger.error(
                "intent_analysis_unexpected_error",
                query=original_query,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return self._degraded(original_query, SearchStrategy.FALLBACK)

        try:
            analysis = parse_analysis(text)
        except AnalysisParseError as exc:
            logger.warning(
                "intent_analysis_unparseable",
                query=original_query,
                error=str(exc),
                raw=text[:500],
            )
            return self._degraded(original_query, SearchStrategy.PARSE_ERROR)

        record_search_strategy(analysis.strategy.value)
        logger.info(
            "intent_analysis_completed",
            query=original_query,
            enhanced_queries=analysis.enhanced_queries,
            additional_topics=len(analysis.additional_topics),
        )
        return analysis

    async def suggest_research_topics(self, topic: str) -> List[str]:
        """Research questions for a podcast topic; empty when unavailable."""
        if not self.is_ready:
            return []

        try:
            text = await self._llm_client.complete(
                agent="suggestions",
                prompt=build_suggestions_prompt(topic),
                temperature=0.7,
            )
        except Exception as exc:
            logger.warning(
                "research_suggestions_failed",
                topic=topic,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return []

        block = extract_balanced(text, "[", "]")
        if block is None:
            logger.warning("research_suggestions_unparseable", topic=topic, raw=text[:500])
            return []
        try:
            decoded = json.loads(block)
        except json.JSONDecodeError:
            logger.warning("research_suggestions_invalid_json", topic=topic, raw=text[:500])
            return []
        if not isinstance(decoded, list):
            return []

        suggestions = [item.strip() for item in decoded if isinstance(item, str) and item.strip()]
        return suggestions[:MAX_SUGGESTIONS]

    @staticmethod
    def _degraded(original_query: str, strategy: SearchStrategy) -> SearchIntentAnalysis:
        record_search_strategy(strategy.value)
        return SearchIntentAnalysis.degraded(original_query, strategy)
