"""
============================================================================
Gift Card Relay v1.0.0
Request Translator - Caller Request to Tillo Wire Payload
============================================================================

Input Constraints: Decoded JSON body from the internal caller
Side Effects: Logs validation failures (no request body values beyond ids)

TRANSLATION:
    amount                -> face_value.amount   (via AmountGateway)
    currency              -> face_value.currency (default "USD")
    brandIdentifier       -> choices             (scalar wrapped in a list)
    clientRequestId       -> client_request_id
    deliveryMethod        -> delivery_method     (default "url")
    fulfilmentBy          -> fulfilment_by       (default "partner")
    sector                -> sector              (default "marketplace")
    fulfilmentParameters  -> fulfilment_parameters (only when present)

Every violated constraint is reported, not just the first.

============================================================================
"""

import logging
from numbers import Number
from typing import Any, Dict, List, Optional

from relay.provider.amount_gateway import AmountGateway
from relay.provider.result import Result
from relay.schemas.issuance import (
    DEFAULT_CURRENCY,
    DEFAULT_DELIVERY_METHOD,
    DEFAULT_FULFILMENT_BY,
    DEFAULT_SECTOR,
    REQUIRED_FULFILMENT_PARAMETERS,
    FaceValue,
    IssuanceValidationError,
    ProviderRequest,
)

logger = logging.getLogger(__name__)


# Optional caller fields that must be strings when supplied
_OPTIONAL_STRING_FIELDS = ("currency", "deliveryMethod", "fulfilmentBy", "sector")

_gateway = AmountGateway()


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == []


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _validate_amount(raw: Dict[str, Any], errors: List[str]) -> None:
    amount = raw.get("amount")
    if amount is None:
        errors.append("amount is required")
        return
    if not _is_number(amount) or not amount > 0:
        errors.append("amount must be a positive number")
        return
    try:
        _gateway.to_decimal(amount)
    except ValueError:
        errors.append("amount must be a positive number")


def _validate_brand(raw: Dict[str, Any], errors: List[str]) -> None:
    brand = raw.get("brandIdentifier")
    if _is_missing(brand):
        errors.append("brandIdentifier is required")
        return
    if isinstance(brand, str):
        return
    if isinstance(brand, list) and all(isinstance(b, str) and b for b in brand):
        return
    errors.append("brandIdentifier must be a string or array of strings")


def _validate_client_request_id(raw: Dict[str, Any], errors: List[str]) -> None:
    client_request_id = raw.get("clientRequestId")
    if _is_missing(client_request_id):
        errors.append("clientRequestId is required")
    elif not isinstance(client_request_id, str):
        errors.append("clientRequestId must be a string")


def _validate_fulfilment_parameters(raw: Dict[str, Any], errors: List[str]) -> None:
    params = raw.get("fulfilmentParameters")
    if params is None:
        return
    if not isinstance(params, dict):
        errors.append("fulfilmentParameters must be an object")
        return
    for name in REQUIRED_FULFILMENT_PARAMETERS:
        if _is_missing(params.get(name)):
            errors.append(f"fulfilmentParameters.{name} is required")


def validate(raw: Any) -> List[str]:
    """
    Collect every constraint violated by a caller request.

    Returns:
        List of human-readable violations (empty when valid)
    """
    if not isinstance(raw, dict):
        return ["request body must be a JSON object"]

    errors: List[str] = []
    _validate_amount(raw, errors)
    _validate_brand(raw, errors)
    _validate_client_request_id(raw, errors)

    for name in _OPTIONAL_STRING_FIELDS:
        value = raw.get(name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{name} must be a string")

    _validate_fulfilment_parameters(raw, errors)
    return errors


def translate(
    raw: Any,
    correlation_id: Optional[str] = None
) -> Result[ProviderRequest, IssuanceValidationError]:
    """
    Validate a caller request and translate it into the provider payload.

    Args:
        raw: Decoded JSON body
        correlation_id: Local request id for log correlation

    Returns:
        Result holding a ProviderRequest, or an IssuanceValidationError
        listing every violation
    """
    errors = validate(raw)
    if errors:
        logger.warning(
            f"[RELAY-VAL-001] Validation failed | "
            f"errors={errors} | request_id={correlation_id}"
        )
        return Result.fail(IssuanceValidationError(errors=errors))

    brand = raw["brandIdentifier"]
    choices = list(brand) if isinstance(brand, list) else [brand]

    request = ProviderRequest(
        client_request_id=raw["clientRequestId"],
        choices=choices,
        face_value=FaceValue(
            amount=_gateway.to_wire(raw["amount"], correlation_id),
            currency=raw.get("currency") or DEFAULT_CURRENCY,
        ),
        delivery_method=raw.get("deliveryMethod") or DEFAULT_DELIVERY_METHOD,
        fulfilment_by=raw.get("fulfilmentBy") or DEFAULT_FULFILMENT_BY,
        sector=raw.get("sector") or DEFAULT_SECTOR,
        fulfilment_parameters=raw.get("fulfilmentParameters"),
    )

    logger.debug(
        f"[RELAY-VAL] Request translated | "
        f"client_request_id={request.client_request_id} | "
        f"choices={request.choices} | request_id={correlation_id}"
    )
    return Result.ok(request)


def signature_amount(request: ProviderRequest) -> str:
    """Amount segment for the signature, rendered from the wire value."""
    return _gateway.to_signature(request.face_value.amount)
