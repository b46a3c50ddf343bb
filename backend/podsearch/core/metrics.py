"""
Prometheus metrics collection module.

Metrics Categories:
- RED Metrics: Rate, Errors, Duration of HTTP requests
- Cache Metrics: hits, misses, live entries
- Upstream Metrics: SerpApi request outcomes and latency
- AI Metrics: generative backend requests, errors, search strategies
- Resource Metrics: process CPU and memory

Naming follows Prometheus conventions:
- Counters: _total suffix
- Histograms: _seconds suffix for durations
- Gauges: No special suffix
"""
from typing import Optional

import psutil
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

from podsearch.core.logging import get_logger

logger = get_logger(__name__)

registry = REGISTRY

# ============================================================================
# RED METRICS - Rate, Errors, Duration
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)

http_errors_total = Counter(
    "http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
    registry=registry,
)

# ============================================================================
# CACHE METRICS
# ============================================================================

cache_hits_total = Counter(
    "cache_hits_total",
    "Total number of cache hits",
    ["cache_type"],
    registry=registry,
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total number of cache misses",
    ["cache_type"],
    registry=registry,
)

cache_entries = Gauge(
    "cache_entries",
    "Number of entries currently held by the result cache",
    registry=registry,
)

# ============================================================================
# UPSTREAM SEARCH METRICS
# ============================================================================

upstream_search_requests_total = Counter(
    "upstream_search_requests_total",
    "Total number of calls to the upstream search provider",
    ["outcome"],  # success, http_error, no_response, config_error
    registry=registry,
)

upstream_search_latency_seconds = Histogram(
    "upstream_search_latency_seconds",
    "Upstream search provider latency in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 7.5, 10.0],
    registry=registry,
)

# ============================================================================
# AI METRICS
# ============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total number of generative backend requests",
    ["agent", "model"],
    registry=registry,
)

llm_errors_total = Counter(
    "llm_errors_total",
    "Total number of generative backend errors",
    ["agent", "error_type"],
    registry=registry,
)

llm_request_latency_seconds = Histogram(
    "llm_request_latency_seconds",
    "Generative backend latency in seconds",
    ["agent"],
    buckets=[0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 15.0, 30.0],
    registry=registry,
)

search_strategy_total = Counter(
    "search_strategy_total",
    "Intent analyses by resulting strategy",
    ["strategy"],  # basic, ai-enhanced, fallback, parse-error
    registry=registry,
)

search_fallbacks_total = Counter(
    "search_fallbacks_total",
    "Intelligent searches answered by the basic search fallback",
    registry=registry,
)

# ============================================================================
# RATE LIMIT & RESOURCE METRICS
# ============================================================================

rate_limit_hits_total = Counter(
    "rate_limit_hits_total",
    "Requests rejected by the rate limiter",
    ["endpoint"],
    registry=registry,
)

system_cpu_usage_percent = Gauge(
    "system_cpu_usage_percent",
    "Process CPU usage percentage",
    registry=registry,
)

system_memory_usage_bytes = Gauge(
    "system_memory_usage_bytes",
    "Process resident memory in bytes",
    registry=registry,
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path for metrics.

    Unknown paths collapse into one label to keep cardinality bounded
    (404 probes would otherwise create a series per path).
    """
    if "?" in path:
        path = path.split("?")[0]
    path = path.rstrip("/") or "/"

    known = {
        "/",
        "/metrics",
        "/api/health",
        "/api/health/config",
        "/api/search/intelligent",
        "/api/search/basic",
        "/api/search/suggestions",
    }
    if path in known:
        return path
    return "other"


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Record HTTP request metrics (RED metrics).

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: Request path (normalized here)
        status_code: HTTP status code
        duration_seconds: Request duration in seconds
    """
    normalized_endpoint = normalize_endpoint(endpoint)

    http_requests_total.labels(
        method=method,
        endpoint=normalized_endpoint,
        status=str(status_code),
    ).inc()

    if status_code >= 400:
        http_errors_total.labels(
            method=method,
            endpoint=normalized_endpoint,
            status_code=str(status_code),
        ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=normalized_endpoint,
    ).observe(duration_seconds)


def record_cache_hit(cache_type: str) -> None:
    cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    cache_misses_total.labels(cache_type=cache_type).inc()


def update_cache_size(size: int) -> None:
    cache_entries.set(size)


def record_upstream_search(outcome: str, duration_seconds: Optional[float] = None) -> None:
    """
    Record one upstream search call.

    Args:
        outcome: success, http_error, no_response or config_error
        duration_seconds: Call latency, omitted when no request was sent
    """
    upstream_search_requests_total.labels(outcome=outcome).inc()
    if duration_seconds is not None:
        upstream_search_latency_seconds.observe(duration_seconds)


def record_llm_request(agent: str, model: str, duration_seconds: float) -> None:
    llm_requests_total.labels(agent=agent, model=model).inc()
    llm_request_latency_seconds.labels(agent=agent).observe(duration_seconds)


def record_llm_error(agent: str, error_type: str) -> None:
    llm_errors_total.labels(agent=agent, error_type=error_type).inc()


def record_search_strategy(strategy: str) -> None:
    search_strategy_total.labels(strategy=strategy).inc()


def record_search_fallback() -> None:
    search_fallbacks_total.inc()


def record_rate_limit_hit(endpoint: str) -> None:
    rate_limit_hits_total.labels(endpoint=normalize_endpoint(endpoint)).inc()


def update_resource_metrics() -> None:
    """
    Update process resource metrics (CPU, memory).

    Called when metrics are scraped.
    """
    try:
        process = psutil.Process()
        system_cpu_usage_percent.set(process.cpu_percent(interval=None))
        system_memory_usage_bytes.set(process.memory_info().rss)
    except psutil.Error as e:
        logger.warning(
            "metrics_resource_update_failed",
            error=str(e),
            error_type=type(e).__name__,
        )


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    update_resource_metrics()
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
