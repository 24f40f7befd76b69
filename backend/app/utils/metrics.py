"""Prometheus metrics for the knowledge pipeline."""

from prometheus_client import Counter, Histogram

extraction_attempts_total = Counter(
    "extraction_attempts_total",
    "Text extraction attempts by strategy",
    ["method", "outcome"],
)

embedding_requests_total = Counter(
    "embedding_requests_total",
    "Embeddings produced, by source (external or fallback)",
    ["source"],
)

llm_latency_ms = Histogram(
    "llm_latency_ms",
    "Generation call latency in milliseconds",
    ["outcome"],
    buckets=[100, 500, 1000, 2000, 5000, 10000, 30000, 60000, 120000],
)

knowledge_search_results = Histogram(
    "knowledge_search_results",
    "Number of knowledge items returned per search",
    buckets=[0, 1, 2, 5, 10, 20, 50],
)


class PrometheusPipelineMetrics:
    """Prometheus-based pipeline metrics implementation."""

    def record_extraction(self, method: str, outcome: str) -> None:
        """Count one extraction attempt."""
        extraction_attempts_total.labels(method=method, outcome=outcome).inc()

    def record_embedding(self, source: str) -> None:
        """Count one produced embedding."""
        embedding_requests_total.labels(source=source).inc()

    def record_llm_latency(self, outcome: str, latency_ms: float) -> None:
        """Record generation latency."""
        llm_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def record_search(self, result_count: int) -> None:
        """Record the size of a search result set."""
        knowledge_search_results.observe(result_count)


_metrics = PrometheusPipelineMetrics()


def get_metrics() -> PrometheusPipelineMetrics:
    """Get the process-wide metrics recorder."""
    return _metrics
