# ============================================================================
# Gift Card Relay v1.0.0
# Tillo API Client - Digital Issue Call
# ============================================================================
#
# Purpose: Sends one signed issue request to Tillo and reports the outcome
#          as a Result value
#
# MANDATE:
#   - Exactly one outbound call per invocation (no retry, no caching)
#   - Every call bounded by a timeout
#   - Transport and HTTP failures are returned, never raised
#
# Error Codes:
#   - RELAY-CLI-001: Provider returned a non-2xx status
#   - RELAY-CLI-002: Provider timed out
#   - RELAY-CLI-003: Transport failure (DNS, connection reset, ...)
#
# ============================================================================

import time
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from relay.config import RelayConfig, DEFAULT_TIMEOUT_SECONDS
from relay.provider.hmac_signer import SignedHeaders, redact_key
from relay.provider.result import Result

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class ProviderResponse:
    """
    Successful provider response.

    ``content`` is the raw body, passed back to the caller verbatim.
    """
    status_code: int
    content: bytes
    latency_ms: float = 0.0


@dataclass(frozen=True)
class ProviderFailure:
    """
    Failed provider call.

    ``status_code`` and ``body`` are None for pure transport failures, in
    which case ``transport_error`` describes what went wrong.
    """
    status_code: Optional[int] = None
    body: Any = None
    transport_error: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def has_response(self) -> bool:
        return self.status_code is not None

    @property
    def error_code(self) -> Optional[str]:
        if isinstance(self.body, dict):
            code = self.body.get("error_code")
            if isinstance(code, str):
                return code
        return None


def _decode_body(response: httpx.Response) -> Any:
    """JSON body when parseable, otherwise text (None when empty)."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


# ============================================================================
# Tillo Client
# ============================================================================

class TilloClient:
    """
    Tillo digital issue client.

    Example Usage:
        client = TilloClient.from_config(config)
        result = await client.issue(payload, signed_headers)
        if result.success:
            body = result.value.content
    """

    def __init__(
        self,
        provider_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            provider_url: Full URL of the issue endpoint
            timeout: Per-call timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.provider_url = provider_url
        self.timeout = timeout
        self._transport = transport

        logger.info(
            f"[RELAY-CLI] Client initialized | "
            f"provider_url={provider_url} | timeout={timeout}s"
        )

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "TilloClient":
        return cls(
            provider_url=config.provider_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    @staticmethod
    def build_headers(signed: SignedHeaders) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        headers.update(signed.as_headers())
        return headers

    async def issue(
        self,
        payload: Dict[str, Any],
        signed: SignedHeaders,
        correlation_id: Optional[str] = None
    ) -> Result[ProviderResponse, ProviderFailure]:
        """
        Send one signed issue request.

        Args:
            payload: Translated wire payload
            signed: Authentication headers and the timestamp they were built with
            correlation_id: Local request id for log correlation

        Returns:
            Result with ProviderResponse on 2xx, ProviderFailure otherwise
        """
        headers = self.build_headers(signed)
        start_time = time.monotonic()

        logger.debug(
            f"[RELAY-CLI] POST {self.provider_url} | "
            f"api_key={redact_key(signed.api_key)} | timestamp={signed.timestamp} | "
            f"request_id={correlation_id}"
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.post(
                    self.provider_url,
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            description = f"Request to provider timed out after {self.timeout}s: {e}"
            logger.error(
                f"[RELAY-CLI-002] Timeout | "
                f"latency={latency_ms:.1f}ms | request_id={correlation_id}"
            )
            return Result.fail(ProviderFailure(
                transport_error=description,
                latency_ms=latency_ms,
            ))
        except httpx.HTTPError as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            description = str(e) or type(e).__name__
            logger.error(
                f"[RELAY-CLI-003] Transport failure | "
                f"error={description} | latency={latency_ms:.1f}ms | "
                f"request_id={correlation_id}"
            )
            return Result.fail(ProviderFailure(
                transport_error=description,
                latency_ms=latency_ms,
            ))

        latency_ms = (time.monotonic() - start_time) * 1000

        if response.is_success:
            logger.info(
                f"[RELAY-CLI] Issue accepted | "
                f"status={response.status_code} | latency={latency_ms:.1f}ms | "
                f"request_id={correlation_id}"
            )
            return Result.ok(ProviderResponse(
                status_code=response.status_code,
                content=response.content,
                latency_ms=latency_ms,
            ))

        body = _decode_body(response)
        logger.warning(
            f"[RELAY-CLI-001] Provider error | "
            f"status={response.status_code} | body={body} | "
            f"latency={latency_ms:.1f}ms | request_id={correlation_id}"
        )
        return Result.fail(ProviderFailure(
            status_code=response.status_code,
            body=body,
            latency_ms=latency_ms,
        ))
