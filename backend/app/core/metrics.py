"""
Prometheus metrics for the triage service, exposed at GET /metrics.

- http_*: request rate, errors and latency per normalized endpoint
- llm_*: provider calls, latency, token usage and failures per vendor/model
- router_outcomes_total: how each router pass ended (succeeded, repaired,
  defaulted, cached); a rising `defaulted` share means the router model is
  producing unusable JSON
- answer_contract_violations_total: answers missing a required section
- cache_*: router cache hits and misses
- system_*: CPU and memory of the host, refreshed on every scrape
"""
import psutil
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

from app.core.logging import get_logger

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
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=registry,
)

# ============================================================================
# LLM METRICS
# ============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total number of LLM provider calls",
    ["vendor", "model"],
    registry=registry,
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "LLM provider call latency in seconds",
    ["vendor", "model"],
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0],
    registry=registry,
)

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total number of LLM tokens consumed",
    ["vendor", "model", "kind"],  # kind: prompt | completion
    registry=registry,
)

llm_errors_total = Counter(
    "llm_errors_total",
    "Total number of LLM provider errors",
    ["vendor", "error_type"],
    registry=registry,
)

# ============================================================================
# TRIAGE METRICS
# ============================================================================

router_outcomes_total = Counter(
    "router_outcomes_total",
    "Router pass outcomes",
    ["outcome"],  # succeeded | repaired | defaulted | cached
    registry=registry,
)

answer_contract_violations_total = Counter(
    "answer_contract_violations_total",
    "Answers missing at least one required section",
    registry=registry,
)

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

# ============================================================================
# RESOURCE METRICS
# ============================================================================

system_cpu_usage_percent = Gauge(
    "system_cpu_usage_percent",
    "System CPU usage percentage",
    registry=registry,
)

system_memory_usage_bytes = Gauge(
    "system_memory_usage_bytes",
    "System memory usage in bytes",
    registry=registry,
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def normalize_endpoint(path: str) -> str:
    """Strip query parameters and trailing slashes to keep label cardinality low."""
    if "?" in path:
        path = path.split("?")[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record HTTP request metrics (RED metrics)."""
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


def record_llm_request(vendor: str, model: str, duration_ms: float) -> None:
    """Record one provider call and its latency."""
    llm_requests_total.labels(vendor=vendor, model=model).inc()
    llm_request_duration_seconds.labels(vendor=vendor, model=model).observe(
        duration_ms / 1000.0
    )


def record_llm_tokens(
    vendor: str,
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
) -> None:
    """Record token usage for one provider call."""
    if prompt_tokens:
        llm_tokens_total.labels(vendor=vendor, model=model, kind="prompt").inc(prompt_tokens)
    if completion_tokens:
        llm_tokens_total.labels(vendor=vendor, model=model, kind="completion").inc(
            completion_tokens
        )


def record_llm_error(vendor: str, error_type: str) -> None:
    """Record a failed provider call."""
    llm_errors_total.labels(vendor=vendor, error_type=error_type).inc()


def record_router_outcome(outcome: str) -> None:
    """Record how the router pass terminated."""
    router_outcomes_total.labels(outcome=outcome).inc()


def record_contract_violation() -> None:
    """Record an answer that failed the section contract."""
    answer_contract_violations_total.inc()


def record_cache_hit(cache_type: str) -> None:
    cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    cache_misses_total.labels(cache_type=cache_type).inc()


def update_resource_metrics() -> None:
    """Update system resource metrics (CPU, memory)."""
    try:
        system_cpu_usage_percent.set(psutil.cpu_percent(interval=None))
        system_memory_usage_bytes.set(psutil.virtual_memory().used)
    except Exception as e:
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
    return CONTENT_TYPE_LATEST
