# ============================================================================
# Gift Card Relay v1.0.0
# Error Normalizer - Provider Failures to Local Error Taxonomy
# ============================================================================
#
# Taxonomy:
#   - VALIDATION_ERROR:       caller input rejected locally (400)
#   - PROVIDER_REJECTION:     known Tillo error_code (provider status)
#   - PROVIDER_UNKNOWN_ERROR: unrecognized error shape (provider status or 500)
#   - TRANSPORT_FAILURE:      no response at all (500)
#
# ============================================================================

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from relay.provider.tillo_client import ProviderFailure
from relay.schemas.issuance import IssuanceValidationError


class ErrorCategory(str, Enum):
    VALIDATION_ERROR = "validation_error"
    PROVIDER_REJECTION = "provider_rejection"
    PROVIDER_UNKNOWN_ERROR = "provider_unknown_error"
    TRANSPORT_FAILURE = "transport_failure"


# Tillo error codes and their stable messages
TILLO_ERROR_CODES: Dict[str, str] = {
    "INVALID_SIGNATURE": "The provided signature is invalid",
    "INVALID_TIMESTAMP": "The timestamp is invalid or expired",
    "INSUFFICIENT_FUNDS": "Insufficient funds for this transaction",
    "BRAND_NOT_AVAILABLE": "The requested brand is not available",
    "INVALID_FACE_VALUE": "The face value is invalid for this brand",
}

GENERIC_FAILURE_MESSAGE = "Failed to process gift card request"
VALIDATION_FAILURE_MESSAGE = "Validation failed"
DEFAULT_ERROR_STATUS = 500
VALIDATION_ERROR_STATUS = 400


def generate_request_id() -> str:
    """Opaque local id for correlating an error with the logs."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class NormalizedError:
    """Uniform error handed back to the caller."""
    http_status: int
    error_message: str
    request_id: str
    category: ErrorCategory
    error_code: Optional[str] = None
    details: Any = None

    def to_envelope(self) -> Dict[str, Any]:
        """Render ``{error, error_code?, details?, requestId}``."""
        envelope: Dict[str, Any] = {"error": self.error_message}
        if self.error_code is not None:
            envelope["error_code"] = self.error_code
        if self.details is not None:
            envelope["details"] = self.details
        envelope["requestId"] = self.request_id
        return envelope


def normalize(
    failure: ProviderFailure,
    request_id: Optional[str] = None
) -> NormalizedError:
    """
    Classify a provider failure.

    A recognized ``error_code`` yields its mapped message with the provider
    status. Anything else yields the generic message with the raw detail,
    or the transport error description when nothing came back.
    """
    request_id = request_id or generate_request_id()
    code = failure.error_code

    if code is not None and code in TILLO_ERROR_CODES and failure.has_response:
        return NormalizedError(
            http_status=failure.status_code,
            error_message=TILLO_ERROR_CODES[code],
            request_id=request_id,
            category=ErrorCategory.PROVIDER_REJECTION,
            error_code=code,
        )

    if failure.has_response:
        return NormalizedError(
            http_status=failure.status_code,
            error_message=GENERIC_FAILURE_MESSAGE,
            request_id=request_id,
            category=ErrorCategory.PROVIDER_UNKNOWN_ERROR,
            details=(
                failure.body if failure.body is not None
                else f"Provider responded with status {failure.status_code}"
            ),
        )

    return NormalizedError(
        http_status=DEFAULT_ERROR_STATUS,
        error_message=GENERIC_FAILURE_MESSAGE,
        request_id=request_id,
        category=ErrorCategory.TRANSPORT_FAILURE,
        details=failure.transport_error,
    )


def normalize_validation(
    error: IssuanceValidationError,
    request_id: Optional[str] = None
) -> NormalizedError:
    """Validation failures always surface as 400 with every violation."""
    details: List[str] = list(error.errors)
    return NormalizedError(
        http_status=VALIDATION_ERROR_STATUS,
        error_message=VALIDATION_FAILURE_MESSAGE,
        request_id=request_id or generate_request_id(),
        category=ErrorCategory.VALIDATION_ERROR,
        details=details,
    )
