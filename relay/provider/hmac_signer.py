# ============================================================================
# Gift Card Relay v1.0.0
# HMAC Signer - Tillo Digital Issue Signature
# ============================================================================
#
# Purpose: Signs every Tillo issue request using HMAC-SHA256
#
# MANDATE:
#   - Credentials are injected via RelayConfig, never read ad hoc
#   - The secret NEVER appears in logs; the API key only redacted
#   - The timestamp used for the signature is the one sent in the header
#
# Tillo Signature Format:
#   payload = api_key-POST-digital-issue-client_request_id-brand-amount-currency-timestamp
#   signature = HMAC-SHA256(secret, payload) as lowercase hex
#
# Error Codes:
#   - RELAY-SEC-001: Signer built without credentials
#
# ============================================================================

import hmac
import hashlib
import time
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


# Fixed by the provider contract: method and endpoint segment
SIGNATURE_METHOD_SEGMENT = "POST-digital-issue"
SIGNATURE_SEPARATOR = "-"

HEADER_API_KEY = "API-Key"
HEADER_SIGNATURE = "Signature"
HEADER_TIMESTAMP = "Timestamp"


class SignerError(Exception):
    """Base exception for signer errors."""
    pass


class MissingCredentialsError(SignerError):
    """Raised when the signer is built without key or secret (RELAY-SEC-001)."""
    pass


# ============================================================================
# Pure Functions
# ============================================================================

def first_brand(brand: Union[str, List[str]]) -> str:
    """Return the brand that participates in the signature."""
    if isinstance(brand, (list, tuple)):
        return brand[0]
    return brand


def generate_timestamp() -> str:
    """Current time as a stringified millisecond epoch."""
    return str(int(time.time() * 1000))


def build_signature_string(
    api_key: str,
    client_request_id: str,
    brand: Union[str, List[str]],
    amount: str,
    currency: str,
    timestamp: str
) -> str:
    """
    Build the canonical string Tillo expects for a digital issue.

    Field order and separators must never change; the provider rebuilds
    the same string and compares digests.

    Args:
        api_key: Tillo API key
        client_request_id: Caller idempotency token
        brand: Brand code, or ordered candidates (first one is signed)
        amount: Amount exactly as rendered in the request body
        currency: ISO currency code
        timestamp: Millisecond epoch string also sent in the header

    Returns:
        Canonical signature string
    """
    return SIGNATURE_SEPARATOR.join([
        str(api_key),
        SIGNATURE_METHOD_SEGMENT,
        str(client_request_id),
        str(first_brand(brand)),
        str(amount),
        str(currency),
        str(timestamp),
    ])


def sign(
    secret: str,
    api_key: str,
    client_request_id: str,
    brand: Union[str, List[str]],
    amount: str,
    currency: str,
    timestamp: str
) -> str:
    """
    Compute the HMAC-SHA256 signature for a digital issue request.

    Side Effects: None

    Returns:
        Lowercase hex digest (64 chars)
    """
    signature_string = build_signature_string(
        api_key, client_request_id, brand, amount, currency, timestamp
    )
    return hmac.new(
        secret.encode("utf-8"),
        signature_string.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def redact_key(api_key: str) -> str:
    """
    Redacted API key for logging purposes.

    Returns first 4 and last 4 characters only.
    """
    if api_key and len(api_key) > 8:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "[REDACTED]"


# ============================================================================
# Signature Context
# ============================================================================

@dataclass(frozen=True)
class SignatureContext:
    """
    Inputs to one signature, derived per request attempt.

    Not reused across requests; ``timestamp`` belongs to a single attempt.
    """
    api_key: str
    client_request_id: str
    brand: str
    amount: str
    currency: str
    timestamp: str

    def signature_string(self) -> str:
        return build_signature_string(
            self.api_key,
            self.client_request_id,
            self.brand,
            self.amount,
            self.currency,
            self.timestamp,
        )

    def __repr__(self) -> str:
        return (
            f"SignatureContext(api_key={redact_key(self.api_key)!r}, "
            f"client_request_id={self.client_request_id!r}, brand={self.brand!r}, "
            f"amount={self.amount!r}, currency={self.currency!r}, "
            f"timestamp={self.timestamp!r})"
        )


@dataclass(frozen=True)
class SignedHeaders:
    """Authentication headers for one request plus the timestamp used."""
    api_key: str
    signature: str
    timestamp: str

    def as_headers(self) -> Dict[str, str]:
        return {
            HEADER_API_KEY: self.api_key,
            HEADER_SIGNATURE: self.signature,
            HEADER_TIMESTAMP: self.timestamp,
        }


# ============================================================================
# Tillo Signer
# ============================================================================

class TilloSigner:
    """
    HMAC-SHA256 request signer for the Tillo digital issue endpoint.

    Holds the process-wide API key and secret handed over from RelayConfig.

    Example Usage:
        signer = TilloSigner(api_key=config.api_key, secret=config.secret_key)
        signed = signer.sign_issue("req-1", "brand-x", "10", "USD")
        headers = signed.as_headers()
    """

    def __init__(self, api_key: str, secret: str, correlation_id: Optional[str] = None):
        """
        Raises:
            MissingCredentialsError: If api_key or secret is empty
        """
        self.correlation_id = correlation_id

        missing = []
        if not api_key:
            missing.append("api_key")
        if not secret:
            missing.append("secret")
        if missing:
            logger.error(
                f"[RELAY-SEC-001] Missing signer credentials | "
                f"missing={missing} | correlation_id={correlation_id}"
            )
            raise MissingCredentialsError(
                f"RELAY-SEC-001: Signer requires credentials, missing: {', '.join(missing)}"
            )

        self._api_key = api_key
        self._secret = secret

        logger.debug(
            f"[RELAY-SIG] Signer initialized | "
            f"api_key={self.get_redacted_key()} | correlation_id={correlation_id}"
        )

    def build_context(
        self,
        client_request_id: str,
        brand: Union[str, List[str]],
        amount: str,
        currency: str,
        timestamp: Optional[str] = None
    ) -> SignatureContext:
        """Assemble the context for one attempt, generating a timestamp if needed."""
        return SignatureContext(
            api_key=self._api_key,
            client_request_id=client_request_id,
            brand=first_brand(brand),
            amount=amount,
            currency=currency,
            timestamp=timestamp if timestamp is not None else generate_timestamp(),
        )

    def sign_context(self, context: SignatureContext) -> SignedHeaders:
        """Sign a prepared context."""
        signature = sign(
            self._secret,
            context.api_key,
            context.client_request_id,
            context.brand,
            context.amount,
            context.currency,
            context.timestamp,
        )

        # Secret never logged; the signature string only with a redacted key
        logger.debug(
            f"[RELAY-SIG] Request signed | "
            f"string={redact_key(context.api_key)}-{SIGNATURE_METHOD_SEGMENT}-"
            f"{context.client_request_id}-{context.brand}-{context.amount}-"
            f"{context.currency}-{context.timestamp} | "
            f"correlation_id={self.correlation_id}"
        )

        return SignedHeaders(
            api_key=context.api_key,
            signature=signature,
            timestamp=context.timestamp,
        )

    def sign_issue(
        self,
        client_request_id: str,
        brand: Union[str, List[str]],
        amount: str,
        currency: str,
        timestamp: Optional[str] = None
    ) -> SignedHeaders:
        """Build and sign in one step."""
        context = self.build_context(client_request_id, brand, amount, currency, timestamp)
        return self.sign_context(context)

    def get_redacted_key(self) -> str:
        return redact_key(self._api_key)

    def __repr__(self) -> str:
        return f"TilloSigner(api_key={self.get_redacted_key()!r})"
