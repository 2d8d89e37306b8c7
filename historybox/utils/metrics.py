"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
coin_operations_total = Counter(
    "coin_operations_total",
    "Total coin ledger operations",
    ["operation", "reason"],  # CREDIT / DEBIT
)

insufficient_funds_total = Counter(
    "insufficient_funds_total",
    "Total debits rejected for insufficient balance",
    ["reason"],
)

region_unlocks_total = Counter(
    "region_unlocks_total",
    "Total paid region unlock actions",
    ["kind"],  # first / extend
)

regions_created_total = Counter(
    "regions_created_total",
    "Total regions created",
)

payment_verifications_total = Counter(
    "payment_verifications_total",
    "Total payment verifications by outcome",
    ["outcome"],  # credited / already_processed / failed / no_plan / no_user / error
)

upstream_requests_total = Counter(
    "upstream_requests_total",
    "Total outbound provider requests",
    ["provider", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
upstream_request_duration_seconds = Histogram(
    "upstream_request_duration_seconds",
    "Outbound provider request duration",
    ["provider"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
