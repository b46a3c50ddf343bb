"""
Search orchestration.

basic_search:        cache -> one upstream search -> dedup/truncate -> cache
intelligent_search:  analyze intent -> parallel upstream searches (one per
                     enhanced query) -> flatten -> dedup -> truncate

Any failure inside intelligent_search is answered by basic_search with the
same query and count. Only a failing basic_search reaches the caller, as
SearchFailure.
"""
import asyncio
import math
from typing import Iterable, List, Optional, Protocol

from podsearch.core.cache import ResultCache, hash_query
from podsearch.core.config import Settings
from podsearch.core.errors import ConfigurationError, SearchFailure, UpstreamError
from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_search_fallback
from podsearch.models.responses import AIEnhancement, SearchResponse, SearchResult
from podsearch.services.ai.analyzer import QueryIntentAnalyzer
from podsearch.services.ai.llm_client import LLMClient
from podsearch.services.search.upstream import SerpApiClient

logger = get_logger(__name__)

MAX_RESULTS = 10
DEFAULT_NUM_RESULTS = 5


class SearchClient(Protocol):
    async def search(self, query: str, num_results: int) -> List[SearchResult]:
        ...


def clamp_num_results(num_results: Optional[int]) -> int:
    if num_results is None:
        return DEFAULT_NUM_RESULTS
    return max(1, min(int(num_results), MAX_RESULTS))


def deduplicate_results(results: Iterable[SearchResult]) -> List[SearchResult]:
    """Keep the first result for each link, preserving order."""
    seen = set()
    unique = []
    for result in results:
        if result.link in seen:
            continue
        seen.add(result.link)
        unique.append(result)
    return unique


def generate_cache_key(mode: str, query: str, num_results: int) -> str:
    """Cache key for a search response: `{mode}:{query_hash}:{n}`."""
    return f"{mode}:{hash_query(query)}:{num_results}"


class SearchOrchestrator:
    """Composes the search client, intent analyzer and result cache."""

    def __init__(
        self,
        search_client: SearchClient,
        analyzer: QueryIntentAnalyzer,
        cache: ResultCache,
    ):
        self.search_client = search_client
        self.analyzer = analyzer
        self.cache = cache

    async def start(self) -> None:
        self.cache.start()
        await self.analyzer.initialize()

    async def close(self) -> None:
        await self.analyzer.shutdown()
        await self.cache.close()

    async def basic_search(self, query: str, num_results: int = DEFAULT_NUM_RESULTS) -> SearchResponse:
        """
        Single upstream search with response caching.

        Raises:
            SearchFailure wrapping ConfigurationError / UpstreamError
        """
        num_results = clamp_num_results(num_results)
        cache_key = generate_cache_key("basic", query, num_results)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("basic_search_cached", query=query, num_results=num_results)
            return cached.model_copy(update={"cached": True})

        try:
            results = await self.search_client.search(query, num_results)
        except (ConfigurationError, UpstreamError) as exc:
            logger.error(
                "basic_search_failed",
                query=query,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise SearchFailure(f"Search failed: {exc}", cause=exc) from exc

        unique = deduplicate_results(results)
        response = SearchResponse(
            original_query=query,
            results=unique[:num_results],
            total_results=len(unique),
            cached=False,
        )
        self.cache.set(cache_key, response)

        logger.info(
            "basic_search_completed",
            query=query,
            results_count=len(response.results),
            total_results=response.total_results,
        )
        return response

    async def intelligent_search(
        self,
        query: str,
        podcast_description: Optional[str] = None,
        context: Optional[str] = None,
        num_results: int = DEFAULT_NUM_RESULTS,
    ) -> SearchResponse:
        """
        AI-assisted search: analyze, fan out, aggregate.

        Never cached. Falls back to basic_search on any failure; a failing
        fallback raises SearchFailure.
        """
        num_results = clamp_num_results(num_results)

        try:
            analysis = await self.analyzer.analyze(
                query,
                podcast_description=podcast_description,
                context=context,
            )

            queries = analysis.enhanced_queries
            per_query = math.ceil(num_results / len(queries))
            logger.info(
                "intelligent_search_fan_out",
                query=query,
                strategy=analysis.strategy.value,
                queries=queries,
                per_query=per_query,
            )

            # All-or-nothing: the first failure propagates; the remaining
            # calls are left to finish on their own timeout.
            batches = await asyncio.gather(
                *(self.search_client.search(q, per_query) for q in queries)
            )

            unique = deduplicate_results(
                result for batch in batches for result in batch
            )
            response = SearchResponse(
                original_query=query,
                results=unique[:num_results],
                total_results=len(unique),
                cached=False,
                ai_enhancement=AIEnhancement(
                    enhanced_queries=list(analysis.enhanced_queries),
                    additional_topics=list(analysis.additional_topics),
                    search_strategy=analysis.strategy,
                ),
            )
        except Exception as exc:
            record_search_fallback()
            logger.warning(
                "intelligent_search_fallback",
                query=query,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return await self.basic_search(query, num_results)

        logger.info(
            "intelligent_search_completed",
            query=query,
            results_count=len(response.results),
            total_results=response.total_results,
        )
        return response

    async def research_suggestions(self, topic: str) -> List[str]:
        return await self.analyzer.suggest_research_topics(topic)


def build_orchestrator(settings: Settings) -> SearchOrchestrator:
    """Wire the production components from settings."""
    search_client = SerpApiClient(
        api_url=settings.serp_api_url,
        engine=settings.serp_engine,
        timeout_seconds=settings.search_timeout_seconds,
    )
    llm_client = None
    if settings.llm_api_key:
        llm_client = LLMClient(
            api_base=settings.llm_api_base,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    cache = ResultCache(
        default_ttl=settings.cache_ttl_seconds,
        check_period=settings.cache_check_period_seconds,
        stats_interval=settings.cache_stats_interval_seconds,
    )
    return SearchOrchestrator(
        search_client=search_client,
        analyzer=QueryIntentAnalyzer(llm_client),
        cache=cache,
    )
