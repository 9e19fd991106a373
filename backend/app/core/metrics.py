"""
Prometheus Metrics Module.

Exposes benchmark and reconciliation metrics for monitoring with Prometheus.
"""

from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

from ml.benchmark.models import BenchmarkOutput, ReconciliationResult

# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "app_info",
    "Application information"
)
APP_INFO.info({
    "app_name": "medical_bill_benchmark",
    "version": "1.0.0",
})

# ============================================
# Benchmark Engine Metrics
# ============================================
BENCHMARKS_TOTAL = Counter(
    "benchmarks_total",
    "Total number of benchmark calculations",
    ["status", "locality_confidence"]
)

BENCHMARK_DURATION_SECONDS = Histogram(
    "benchmark_duration_seconds",
    "Time spent calculating a bill's benchmarks",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

BENCHMARK_LINES_TOTAL = Counter(
    "benchmark_lines_total",
    "Line items benchmarked, by match outcome and fairness tier",
    ["match_status", "status"]
)

BENCHMARK_MULTIPLE = Histogram(
    "benchmark_multiple",
    "Distribution of bill-level multiples of the Medicare reference",
    buckets=[0.5, 1.0, 1.5, 2.0, 3.0, 4.0, 6.0, 10.0]
)

YEAR_FALLBACKS_TOTAL = Counter(
    "benchmark_year_fallbacks_total",
    "Calculations that fell back to the latest fee schedule year"
)

# ============================================
# Totals Reconciliation Metrics
# ============================================
RECONCILIATIONS_TOTAL = Counter(
    "reconciliations_total",
    "Total number of totals reconciliations",
    ["status", "document_type", "comparison_type"]
)

# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ============================================
# Metrics Router
# ============================================
router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """
    Expose Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# ============================================
# Helper Functions
# ============================================
def track_benchmark(output: BenchmarkOutput, duration_seconds: float):
    """Track a completed benchmark calculation."""
    BENCHMARKS_TOTAL.labels(
        status=output.status.value,
        locality_confidence=output.metadata.locality_confidence.value,
    ).inc()
    BENCHMARK_DURATION_SECONDS.observe(duration_seconds)

    if output.totals.multiple is not None:
        BENCHMARK_MULTIPLE.observe(output.totals.multiple)
    if output.metadata.used_year_fallback:
        YEAR_FALLBACKS_TOTAL.inc()

    for line in output.line_results:
        BENCHMARK_LINES_TOTAL.labels(
            match_status=line.match_status.value,
            status=line.status.value,
        ).inc()


def track_reconciliation(result: ReconciliationResult):
    """Track a totals reconciliation outcome."""
    comparison_type = result.comparison_total.type.value if result.comparison_total else "none"
    RECONCILIATIONS_TOTAL.labels(
        status=result.reconciliation_status.value,
        document_type=result.document_classification.value,
        comparison_type=comparison_type,
    ).inc()


def track_http_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
    """Track HTTP request metrics."""
    HTTP_REQUESTS_TOTAL.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code)
    ).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)
