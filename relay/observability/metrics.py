"""
============================================================================
Gift Card Relay v1.0.0
Prometheus Metrics - Issuance Observability
============================================================================

Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- giftcard_issuance_requests_total: Counter of issuance outcomes
- giftcard_provider_latency_seconds: Histogram of provider call latency
- giftcard_rate_limited_total: Counter of requests rejected by the limiter

Recording never raises: a metrics failure must not change a response.

============================================================================
"""

import logging
from typing import Optional

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

ISSUANCE_REQUESTS = Counter(
    "giftcard_issuance_requests_total",
    "Total gift card issuance requests by outcome",
    ["outcome"]
)

PROVIDER_LATENCY = Histogram(
    "giftcard_provider_latency_seconds",
    "Latency of the outbound provider issue call",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

RATE_LIMITED = Counter(
    "giftcard_rate_limited_total",
    "Total inbound requests rejected by the rate limiter"
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_issuance_outcome(outcome: str, request_id: Optional[str] = None) -> None:
    """
    Record the final outcome of one issuance request.

    Args:
        outcome: "success" or an ErrorCategory value
        request_id: Optional tracking ID
    """
    try:
        ISSUANCE_REQUESTS.labels(outcome=outcome).inc()
        logger.debug(
            "Metric: issuance_outcome | outcome=%s | request_id=%s",
            outcome, request_id
        )
    except Exception as e:
        logger.error(
            "[OBS-001] Failed to record issuance_outcome metric | error=%s",
            str(e)
        )


def record_provider_latency(latency_ms: float) -> None:
    try:
        PROVIDER_LATENCY.observe(latency_ms / 1000.0)
    except Exception as e:
        logger.error(
            "[OBS-002] Failed to record provider_latency metric | error=%s",
            str(e)
        )


def record_rate_limited() -> None:
    try:
        RATE_LIMITED.inc()
    except Exception as e:
        logger.error(
            "[OBS-003] Failed to record rate_limited metric | error=%s",
            str(e)
        )
