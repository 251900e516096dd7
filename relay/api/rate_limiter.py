# ============================================================================
# Gift Card Relay v1.0.0
# Inbound Rate Limiter - Token Bucket per Client IP
# ============================================================================
#
# Purpose: Rejects excess inbound requests before they reach the pipeline
#
# MANDATE:
#   - Thread-safe with mutex lock
#   - One bucket per client IP, refilled continuously
#   - At most MAX_TRACKED_CLIENTS buckets held at once
#   - Default budget: 100 requests per 15 minutes per IP
#
# Error Codes:
#   - RELAY-RATE-001: Rate limit exceeded
#   - RELAY-RATE-002: Bucket table full, client evicted
#
# ============================================================================

import time
import threading
import logging
from collections import OrderedDict
from typing import Callable, Optional

from fastapi import Request

logger = logging.getLogger(__name__)


# Hard cap on tracked buckets; least recently used are evicted first
MAX_TRACKED_CLIENTS = 10000


class TokenBucket:
    """
    Token bucket for one client.

    Not locked on its own; the owning ClientRateLimiter holds the mutex.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic
    ):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def consume(self, tokens: int = 1) -> bool:
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    def retry_after(self) -> float:
        """Seconds until one token is available."""
        self._refill()
        missing = max(0.0, 1.0 - self._tokens)
        return missing / self.refill_rate if self.refill_rate > 0 else 0.0


class ClientRateLimiter:
    """
    Thread-safe per-client token bucket limiter.

    Example Usage:
        limiter = ClientRateLimiter(max_requests=100, window_seconds=900)
        if not limiter.allow("10.0.0.1"):
            return 429
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.refill_rate = max_requests / window_seconds
        self._clock = clock
        self._buckets: "OrderedDict[str, TokenBucket]" = OrderedDict()
        self._lock = threading.Lock()

        logger.info(
            f"[RELAY-RATE] Limiter initialized | "
            f"max_requests={max_requests} | window={window_seconds}s"
        )

    def allow(self, client_key: str, correlation_id: Optional[str] = None) -> bool:
        """Consume one token for ``client_key``; False when exhausted."""
        with self._lock:
            bucket = self._buckets.get(client_key)
            if bucket is None:
                if len(self._buckets) >= MAX_TRACKED_CLIENTS:
                    self._prune_unlocked()
                bucket = TokenBucket(self.max_requests, self.refill_rate, self._clock)
                self._buckets[client_key] = bucket
            else:
                self._buckets.move_to_end(client_key)

            if bucket.consume():
                return True

            logger.warning(
                f"[RELAY-RATE-001] Rate limit exceeded | "
                f"client={client_key} | retry_after={bucket.retry_after():.1f}s | "
                f"request_id={correlation_id}"
            )
            return False

    def retry_after(self, client_key: str) -> float:
        with self._lock:
            bucket = self._buckets.get(client_key)
            return bucket.retry_after() if bucket else 0.0

    def _prune_unlocked(self) -> None:
        """Evict least recently used buckets down to the cap (must hold the lock)."""
        while len(self._buckets) >= MAX_TRACKED_CLIENTS:
            evicted, _ = self._buckets.popitem(last=False)
            logger.warning(
                f"[RELAY-RATE-002] Bucket table full, evicting client | "
                f"client={evicted} | cap={MAX_TRACKED_CLIENTS}"
            )

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._buckets)


def extract_client_ip(request: Request) -> str:
    """
    Client IP address, honoring X-Forwarded-For behind a reverse proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "0.0.0.0"
