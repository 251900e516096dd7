"""
============================================================================
Gift Card Relay v1.0.0
Observability Module - Prometheus Metrics
============================================================================
"""

from relay.observability.metrics import (
    ISSUANCE_REQUESTS,
    PROVIDER_LATENCY,
    RATE_LIMITED,
    record_issuance_outcome,
    record_provider_latency,
    record_rate_limited,
)

__all__ = [
    "ISSUANCE_REQUESTS",
    "PROVIDER_LATENCY",
    "RATE_LIMITED",
    "record_issuance_outcome",
    "record_provider_latency",
    "record_rate_limited",
]
