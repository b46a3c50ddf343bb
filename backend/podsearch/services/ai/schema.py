"""
Pydantic models for the intent analyzer.

The generative model is asked for a JSON object of the shape

    {
      "enhancedQueries": ["query1", "query2", "query3"],
      "additionalTopics": ["topic1", "topic2"],
      "reasoning": "Brief explanation of your strategy"
    }

AnalysisPayload validates that raw object; SearchIntentAnalysis is what the
analyzer hands to the orchestrator.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

MAX_ENHANCED_QUERIES = 3
MAX_ADDITIONAL_TOPICS = 5


class SearchStrategy(str, Enum):
    """How the candidate queries of an analysis were produced."""

    BASIC = "basic"
    AI_ENHANCED = "ai-enhanced"
    FALLBACK = "fallback"
    PARSE_ERROR = "parse-error"


def _clean_strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        raise ValueError("must be a list of strings")
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class AnalysisPayload(BaseModel):
    """Raw analysis object decoded from the model response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enhanced_queries: List[str]
    additional_topics: List[str] = Field(default_factory=list)
    reasoning: Optional[str] = None

    @field_validator("enhanced_queries", mode="before")
    @classmethod
    def validate_enhanced_queries(cls, value: Any) -> List[str]:
        queries = _clean_strings(value)
        if not queries:
            raise ValueError("enhancedQueries must contain at least one query")
        return queries

    @field_validator("additional_topics", mode="before")
    @classmethod
    def validate_additional_topics(cls, value: Any) -> List[str]:
        # Non-list topics count as none.
        if not isinstance(value, list):
            return []
        return _clean_strings(value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def validate_reasoning(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


class SearchIntentAnalysis(BaseModel):
    """
    Result of analyzing a search query.

    enhanced_queries always holds between one and three entries; degraded
    analyses carry just the original query.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enhanced_queries: List[str] = Field(..., min_length=1, max_length=MAX_ENHANCED_QUERIES)
    additional_topics: List[str] = Field(default_factory=list, max_length=MAX_ADDITIONAL_TOPICS)
    strategy: SearchStrategy
    reasoning: Optional[str] = None

    @classmethod
    def degraded(cls, original_query: str, strategy: SearchStrategy) -> "SearchIntentAnalysis":
        return cls(enhanced_queries=[original_query], additional_topics=[], strategy=strategy)


class AnalysisParseError(Exception):
    """Raised when a model response cannot be turned into an analysis."""

    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.raw_output = raw_output


def validate_analysis_payload(payload: Dict[str, Any]) -> AnalysisPayload:
    """
    Validate decoded JSON payload for an analysis.

    Raises:
        AnalysisParseError if validation fails.
    """
    try:
        return AnalysisPayload.model_validate(payload)
    except ValidationError as exc:
        raise AnalysisParseError(f"Invalid analysis payload: {exc}") from exc
