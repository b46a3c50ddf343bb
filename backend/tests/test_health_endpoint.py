"""
Integration tests for health check endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from podsearch.core.cache import ResultCache
from podsearch.core.config import Settings
from podsearch.main import create_app
from podsearch.services.ai.analyzer import QueryIntentAnalyzer
from podsearch.services.search.orchestrator import SearchOrchestrator


class NoopSearchClient:
    async def search(self, query, num_results):
        return []


@pytest.fixture
def client():
    orchestrator = SearchOrchestrator(
        search_client=NoopSearchClient(),
        analyzer=QueryIntentAnalyzer(None),
        cache=ResultCache(check_period=60, stats_interval=60),
    )
    with TestClient(create_app(app_settings=Settings(), orchestrator=orchestrator)) as test_client:
        yield test_client


def test_basic_health_check(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "ok"
    assert "timestamp" in data


def test_config_health_with_key(client, monkeypatch):
    monkeypatch.setenv("SERP_API_KEY", "abc123")

    data = client.get("/api/health/config").json()

    assert data["status"] == "ok"
    assert data["checks"]["hasSearchApiKey"] is True
    assert data["checks"]["searchApiKeyLength"] == 6
    assert data["checks"]["searchApiKeyHasWhitespace"] is False
    assert data["checks"]["aiBackend"] == "disabled"
    assert data["checks"]["cache"] == {"keys": 0, "hits": 0, "misses": 0}
    assert "abc123" not in str(data)


def test_config_health_reports_whitespace(client, monkeypatch):
    monkeypatch.setenv("SERP_API_KEY", " abc123\n")

    checks = client.get("/api/health/config").json()["checks"]

    assert checks["searchApiKeyLength"] == 6
    assert checks["searchApiKeyHasWhitespace"] is True


def test_config_health_without_key_is_degraded(client, monkeypatch):
    monkeypatch.delenv("SERP_API_KEY", raising=False)

    data = client.get("/api/health/config").json()

    assert data["status"] == "degraded"
    assert data["checks"]["hasSearchApiKey"] is False
    assert data["checks"]["searchApiKeyLength"] == 0
    assert data["message"] == "API key is NOT loaded in environment"
