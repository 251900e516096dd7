"""
============================================================================
Gift Card Relay v1.0.0
Issuance API - Gift Card Issue Endpoint
============================================================================

Input Constraints: JSON body in the IssuanceRequest shape
Side Effects: Exactly one outbound call to Tillo per valid request

FLOW:
1. Decode JSON body (malformed JSON is a validation failure)
2. Run the issuance pipeline (validate → sign → call → respond)
3. Success: provider body verbatim
4. Failure: {error, error_code?, details?, requestId} with mapped status

============================================================================
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from relay.logic.issuance_pipeline import IssuancePipeline
from relay.observability.metrics import record_issuance_outcome
from relay.provider.error_normalizer import ErrorCategory, normalize_validation
from relay.schemas.issuance import IssuanceValidationError

logger = logging.getLogger(__name__)


# ============================================================================
# ROUTER
# ============================================================================

router = APIRouter()


def get_pipeline(request: Request) -> IssuancePipeline:
    """Pipeline built at startup and stored on the application state."""
    return request.app.state.pipeline


@router.post(
    "/issue-gift-card",
    summary="Issue Gift Card",
    description=(
        "Signs and forwards a digital gift card issue request to Tillo.\n\n"
        "**Success:** the provider response body, unchanged\n\n"
        "**Failure:** `{error, error_code?, details?, requestId}` with the "
        "mapped HTTP status"
    ),
    responses={
        200: {"description": "Provider accepted the issue request"},
        400: {"description": "Validation failed; details lists every violation"},
        402: {"description": "Provider rejection, e.g. INSUFFICIENT_FUNDS"},
        429: {"description": "Inbound rate limit exceeded"},
        500: {"description": "Transport failure or unknown provider error"},
    }
)
async def issue_gift_card(
    request: Request,
    pipeline: IssuancePipeline = Depends(get_pipeline)
):
    raw_body = await request.body()
    try:
        body = json.loads(raw_body) if raw_body else None
    except ValueError:
        error = normalize_validation(
            IssuanceValidationError(errors=["request body must be valid JSON"])
        )
        logger.warning(
            f"[RELAY-VAL-002] Malformed JSON body | request_id={error.request_id}"
        )
        record_issuance_outcome(ErrorCategory.VALIDATION_ERROR.value, error.request_id)
        return JSONResponse(status_code=error.http_status, content=error.to_envelope())

    outcome = await pipeline.run(body)

    if outcome.succeeded:
        return Response(
            content=outcome.content,
            status_code=outcome.status_code,
            media_type="application/json",
        )

    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
