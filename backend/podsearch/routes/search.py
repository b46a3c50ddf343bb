"""
Search endpoints.

POST /api/search/intelligent   AI-assisted search with query expansion
POST /api/search/basic         Plain SerpApi search (cached)
POST /api/search/suggestions   Research questions for a podcast topic
"""
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from podsearch.core.logging import get_logger
from podsearch.models.responses import (
    BasicSearchRequest,
    IntelligentSearchRequest,
    SearchEnvelope,
    SuggestionsEnvelope,
    SuggestionsRequest,
    SuggestionsResponse,
)
from podsearch.services.search.orchestrator import MAX_RESULTS, SearchOrchestrator

logger = get_logger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> SearchOrchestrator:
    return request.app.state.orchestrator


def _require_text(value, field: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        logger.warning("search_request_invalid", field=field)
        raise HTTPException(status_code=400, detail=f"{field.capitalize()} parameter is required")
    return text


@router.post("/intelligent", response_model=SearchEnvelope)
async def intelligent_search(
    body: IntelligentSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """
    AI-powered search.

    The query is expanded by the intent analyzer and searched in parallel;
    on any failure the basic search answers instead.
    """
    start_time = time.time()
    query = _require_text(body.query, "query")

    logger.info(
        "intelligent_search_request",
        query=query,
        podcast_description=(body.podcast_description or "")[:100],
        context=(body.context or "")[:50],
        num_results=body.num_results,
    )

    response = await orchestrator.intelligent_search(
        query,
        podcast_description=body.podcast_description,
        context=body.context,
        num_results=min(body.num_results, MAX_RESULTS),
    )

    logger.info(
        "intelligent_search_response",
        query=query,
        results_count=len(response.results),
        strategy=response.ai_enhancement.search_strategy.value if response.ai_enhancement else None,
        latency_ms=int((time.time() - start_time) * 1000),
    )
    return SearchEnvelope(data=response)


@router.post("/basic", response_model=SearchEnvelope)
async def basic_search(
    body: BasicSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Basic SerpApi search without AI enhancement."""
    start_time = time.time()
    query = _require_text(body.query, "query")

    response = await orchestrator.basic_search(query, min(body.num_results, MAX_RESULTS))

    logger.info(
        "basic_search_response",
        query=query,
        results_count=len(response.results),
        cached=response.cached,
        latency_ms=int((time.time() - start_time) * 1000),
    )
    return SearchEnvelope(data=response)


@router.post("/suggestions", response_model=SuggestionsEnvelope)
async def research_suggestions(
    body: SuggestionsRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Research questions for a podcast topic (empty when AI is unavailable)."""
    topic = _require_text(body.topic, "topic")
    suggestions = await orchestrator.research_suggestions(topic)
    return SuggestionsEnvelope(data=SuggestionsResponse(topic=topic, suggestions=suggestions))
