"""Pydantic models for API requests and responses."""

from .responses import (
    AIEnhancement,
    BasicSearchRequest,
    ErrorDetail,
    ErrorEnvelope,
    IntelligentSearchRequest,
    SearchEnvelope,
    SearchResponse,
    SearchResult,
    SuggestionsEnvelope,
    SuggestionsRequest,
    SuggestionsResponse,
)

__all__ = [
    "AIEnhancement",
    "BasicSearchRequest",
    "ErrorDetail",
    "ErrorEnvelope",
    "IntelligentSearchRequest",
    "SearchEnvelope",
    "SearchResponse",
    "SearchResult",
    "SuggestionsEnvelope",
    "SuggestionsRequest",
    "SuggestionsResponse",
]
