"""
Unit tests for the query intent analyzer.

These tests use in-memory stubs only and do NOT perform real HTTP calls.
"""
import json
from typing import List, Optional

import pytest

from podsearch.core.errors import LLMError
from podsearch.services.ai.analyzer import (
    BackendState,
    QueryIntentAnalyzer,
    build_analysis_prompt,
    extract_balanced,
)
from podsearch.services.ai.schema import SearchStrategy


class DummyLLMClient:
    """Stub that returns canned text (or raises) for every completion."""

    def __init__(self, text: str = "", error: Optional[Exception] = None, api_key: Optional[str] = "key"):
        self.api_key = api_key
        self.model = "dummy-model"
        self._text = text
        self._error = error
        self.prompts: List[str] = []
        self.opened = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.opened = False

    async def complete(self, agent: str, prompt: str, max_tokens: int = 512, temperature: float = 0.4) -> str:
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return self._text


async def ready_analyzer(client: DummyLLMClient) -> QueryIntentAnalyzer:
    analyzer = QueryIntentAnalyzer(client)
    await analyzer.initialize()
    assert analyzer.state is BackendState.READY
    return analyzer


@pytest.mark.asyncio
async def test_analyze_without_backend_is_basic():
    """No configured model: the original query is returned unchanged."""
    analyzer = QueryIntentAnalyzer(None)
    state = await analyzer.initialize()

    result = await analyzer.analyze("climate policy")

    assert state is BackendState.DISABLED
    assert result.strategy is SearchStrategy.BASIC
    assert result.enhanced_queries == ["climate policy"]
    assert result.additional_topics == []


@pytest.mark.asyncio
async def test_analyze_before_initialize_is_basic_and_skips_model():
    """Requests arriving before initialization completes degrade to basic."""
    client = DummyLLMClient(text='{"enhancedQueries": ["x"]}')
    analyzer = QueryIntentAnalyzer(client)

    result = await analyzer.analyze("climate policy")

    assert analyzer.state is BackendState.UNINITIALIZED
    assert result.strategy is SearchStrategy.BASIC
    assert client.prompts == []


@pytest.mark.asyncio
async def test_initialize_failure_marks_backend_failed():
    class FailingOpenClient(DummyLLMClient):
        async def open(self):
            raise LLMError("boom")

    analyzer = QueryIntentAnalyzer(FailingOpenClient())
    state = await analyzer.initialize()

    assert state is BackendState.FAILED
    result = await analyzer.analyze("q")
    assert result.strategy is SearchStrategy.BASIC


@pytest.mark.asyncio
async def test_analyze_ai_enhanced_clamps_lists():
    """Valid JSON yields ai-enhanced with at most 3 queries and 5 topics."""
    payload = {
        "enhancedQueries": ["q1", "q2", "q3", "q4"],
        "additionalTopics": ["t1", "t2", "t3", "t4", "t5", "t6", "t7"],
        "reasoning": "Looking for recent policy coverage",
    }
    analyzer = await ready_analyzer(DummyLLMClient(text=json.dumps(payload)))

    result = await analyzer.analyze("climate policy", podcast_description="Weekly science show")

    assert result.strategy is SearchStrategy.AI_ENHANCED
    assert result.enhanced_queries == ["q1", "q2", "q3"]
    assert result.additional_topics == ["t1", "t2", "t3", "t4", "t5"]
    assert result.reasoning == "Looking for recent policy coverage"


@pytest.mark.asyncio
async def test_analyze_extracts_json_from_prose_and_code_fences():
    text = (
        "Sure! Here is the analysis:\n```json\n"
        '{"enhancedQueries": ["climate policy {2025}", "carbon tax news"], "additionalTopics": []}\n'
        "```\nLet me know if you need more {help}."
    )
    analyzer = await ready_analyzer(DummyLLMClient(text=text))

    result = await analyzer.analyze("climate policy")

    assert result.strategy is SearchStrategy.AI_ENHANCED
    assert result.enhanced_queries == ["climate policy {2025}", "carbon tax news"]
    assert result.reasoning == "AI analysis completed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text",
    [
        "I cannot help with that.",
        '{"enhancedQueries": ["unterminated"',
        "{not: valid json}",
        '{"enhancedQueries": []}',
        '{"enhancedQueries": ["", "   "]}',
        '{"additionalTopics": ["only topics"]}',
        '{"enhancedQueries": "not a list"}',
    ],
)
async def test_analyze_unusable_response_is_parse_error(text):
    analyzer = await ready_analyzer(DummyLLMClient(text=text))

    result = await analyzer.analyze("climate policy")

    assert result.strategy is SearchStrategy.PARSE_ERROR
    assert result.enhanced_queries == ["climate policy"]
    assert result.additional_topics == []


@pytest.mark.asyncio
@pytest.mark.parametrize("topics", ['"space policy"', "42", '{"a": 1}', "null"])
async def test_analyze_malformed_topics_keep_enhanced_queries(topics):
    text = '{"enhancedQueries": ["a", "b"], "additionalTopics": %s}' % topics
    analyzer = await ready_analyzer(DummyLLMClient(text=text))

    result = await analyzer.analyze("climate policy")

    assert result.strategy is SearchStrategy.AI_ENHANCED
    assert result.enhanced_queries == ["a", "b"]
    assert result.additional_topics == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [LLMError("timed out", reason="timeout"), RuntimeError("unexpected")])
async def test_analyze_model_failure_is_fallback(error):
    analyzer = await ready_analyzer(DummyLLMClient(error=error))

    result = await analyzer.analyze("climate policy")

    assert result.strategy is SearchStrategy.FALLBACK
    assert result.enhanced_queries == ["climate policy"]


@pytest.mark.asyncio
async def test_shutdown_returns_to_uninitialized():
    client = DummyLLMClient(text="{}")
    analyzer = await ready_analyzer(client)

    await analyzer.shutdown()

    assert analyzer.state is BackendState.UNINITIALIZED
    assert client.opened is False


def test_prompt_includes_context_and_required_keys():
    prompt = build_analysis_prompt(
        "climate policy",
        podcast_description="A weekly show about science",
        context="Focus on Europe",
    )

    assert '"climate policy"' in prompt
    assert "Description: A weekly show about science" in prompt
    assert "Additional Context: Focus on Europe" in prompt
    for key in ("enhancedQueries", "additionalTopics", "reasoning"):
        assert key in prompt


def test_prompt_without_description():
    prompt = build_analysis_prompt("climate policy")

    assert "No description provided" in prompt
    assert "Additional Context" not in prompt


def test_extract_balanced_ignores_braces_in_strings():
    text = 'prefix {"a": "}{", "b": {"c": 1}} suffix {"d": 2}'

    assert extract_balanced(text) == '{"a": "}{", "b": {"c": 1}}'


def test_extract_balanced_skips_unbalanced_start():
    assert extract_balanced('{ broken [1, 2] ') is None
    assert extract_balanced('see [1, [2, 3]] and [4]', "[", "]") == "[1, [2, 3]]"


@pytest.mark.asyncio
async def test_research_suggestions_parses_array():
    text = 'Here you go: ["What changed in 2025?", "", "Who pays for it?", 3]'
    analyzer = await ready_analyzer(DummyLLMClient(text=text))

    suggestions = await analyzer.suggest_research_topics("climate policy")

    assert suggestions == ["What changed in 2025?", "Who pays for it?"]


@pytest.mark.asyncio
async def test_research_suggestions_capped_at_five():
    text = json.dumps([f"question {i}" for i in range(8)])
    analyzer = await ready_analyzer(DummyLLMClient(text=text))

    suggestions = await analyzer.suggest_research_topics("climate policy")

    assert len(suggestions) == 5


@pytest.mark.asyncio
async def test_research_suggestions_empty_when_unavailable_or_failing():
    disabled = QueryIntentAnalyzer(None)
    await disabled.initialize()
    assert await disabled.suggest_research_topics("topic") == []

    failing = await ready_analyzer(DummyLLMClient(error=LLMError("down")))
    assert await failing.suggest_research_topics("topic") == []

    no_array = await ready_analyzer(DummyLLMClient(text="no list here"))
    assert await no_array.suggest_research_topics("topic") == []
