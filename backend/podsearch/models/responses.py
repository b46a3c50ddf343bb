"""
Request and response models for the search API.

Attributes are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from podsearch.services.ai.schema import SearchStrategy


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class SearchResult(CamelModel):
    """One normalized result from the search provider. `link` is its identity."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    link: str
    snippet: str
    display_link: str
    source: str
    date: Optional[str] = None


class AIEnhancement(CamelModel):
    enhanced_queries: List[str]
    additional_topics: List[str] = Field(default_factory=list)
    search_strategy: SearchStrategy


class SearchResponse(CamelModel):
    original_query: str
    results: List[SearchResult]
    total_results: int
    cached: bool = False
    ai_enhancement: Optional[AIEnhancement] = None


class SuggestionsResponse(CamelModel):
    topic: str
    suggestions: List[str]


class IntelligentSearchRequest(CamelModel):
    """Body of POST /api/search/intelligent."""

    query: Optional[str] = None
    podcast_description: Optional[str] = None
    context: Optional[str] = None
    num_results: int = 5


class BasicSearchRequest(CamelModel):
    """Body of POST /api/search/basic."""

    query: Optional[str] = None
    num_results: int = 5


class SuggestionsRequest(CamelModel):
    """Body of POST /api/search/suggestions."""

    topic: Optional[str] = None


class SearchEnvelope(CamelModel):
    success: bool = True
    data: SearchResponse
    timestamp: str = Field(default_factory=utc_timestamp)


class SuggestionsEnvelope(CamelModel):
    success: bool = True
    data: SuggestionsResponse
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorDetail(CamelModel):
    message: str
    type: str


class ErrorEnvelope(CamelModel):
    success: bool = False
    error: ErrorDetail
    timestamp: str = Field(default_factory=utc_timestamp)
