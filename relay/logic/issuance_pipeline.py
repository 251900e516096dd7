"""
============================================================================
Gift Card Relay v1.0.0
Issuance Pipeline - Orchestrator State Machine
============================================================================

Traceability: Every run carries a local request_id for log correlation

ISSUANCE STATE MACHINE:
    Every issuance request follows a strict, forward-only state machine:

    VALIDATING → SIGNING     (caller request valid)
    VALIDATING → RESPONDING  (validation failed)
    SIGNING    → CALLING     (request signed)
    SIGNING    → RESPONDING  (signing failed)
    CALLING    → RESPONDING  (provider call finished, either way)
    RESPONDING → SUCCEEDED   (provider accepted)
    RESPONDING → FAILED      (any failure on the way)

    Terminal States: SUCCEEDED, FAILED (no further transitions)
    No state is retried.

ERROR CODES:
    - RELAY-STATE-001: Invalid state transition attempted

============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from relay.logic.translator import signature_amount, translate
from relay.observability.metrics import record_issuance_outcome, record_provider_latency
from relay.provider.error_normalizer import (
    NormalizedError,
    generate_request_id,
    normalize,
    normalize_validation,
)
from relay.provider.hmac_signer import SignedHeaders, TilloSigner, generate_timestamp
from relay.provider.result import Result
from relay.provider.tillo_client import ProviderResponse, TilloClient
from relay.schemas.issuance import IssuanceValidationError, ProviderRequest

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class IssuanceStateErrorCode:
    INVALID_TRANSITION = "RELAY-STATE-001"


# =============================================================================
# States
# =============================================================================

class IssuanceState(Enum):
    VALIDATING = "VALIDATING"
    SIGNING = "SIGNING"
    CALLING = "CALLING"
    RESPONDING = "RESPONDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


VALID_TRANSITIONS: Dict[IssuanceState, List[IssuanceState]] = {
    IssuanceState.VALIDATING: [IssuanceState.SIGNING, IssuanceState.RESPONDING],
    IssuanceState.SIGNING: [IssuanceState.CALLING, IssuanceState.RESPONDING],
    IssuanceState.CALLING: [IssuanceState.RESPONDING],
    IssuanceState.RESPONDING: [IssuanceState.SUCCEEDED, IssuanceState.FAILED],
    IssuanceState.SUCCEEDED: [],
    IssuanceState.FAILED: [],
}

TERMINAL_STATES: List[IssuanceState] = [IssuanceState.SUCCEEDED, IssuanceState.FAILED]


class InvalidTransitionError(Exception):
    """Raised when a run attempts a transition outside VALID_TRANSITIONS."""

    def __init__(self, current: IssuanceState, target: IssuanceState):
        self.error_code = IssuanceStateErrorCode.INVALID_TRANSITION
        self.current = current
        self.target = target
        super().__init__(
            f"[{self.error_code}] Invalid state transition: "
            f"{current.value} → {target.value}"
        )


def validate_transition(
    current_state: IssuanceState,
    target_state: IssuanceState,
    request_id: Optional[str] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check a transition against the state machine.

    Returns:
        (True, None) if allowed, (False, "RELAY-STATE-001") otherwise
    """
    valid_targets = VALID_TRANSITIONS.get(current_state, [])
    if target_state not in valid_targets:
        valid_str = "/".join(s.value for s in valid_targets) or "NONE (terminal state)"
        logger.error(
            f"[{IssuanceStateErrorCode.INVALID_TRANSITION}] "
            f"Invalid state transition: {current_state.value} → {target_state.value}. "
            f"Valid transitions from {current_state.value}: {valid_str} | "
            f"request_id={request_id}"
        )
        return (False, IssuanceStateErrorCode.INVALID_TRANSITION)
    return (True, None)


# =============================================================================
# Run state and outcome
# =============================================================================

@dataclass
class IssuanceRun:
    """Mutable state of a single issuance request; never shared."""
    request_id: str
    state: IssuanceState = IssuanceState.VALIDATING
    history: List[IssuanceState] = field(default_factory=lambda: [IssuanceState.VALIDATING])

    def transition(self, target: IssuanceState) -> None:
        is_valid, _ = validate_transition(self.state, target, self.request_id)
        if not is_valid:
            raise InvalidTransitionError(self.state, target)
        self.state = target
        self.history.append(target)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class IssuanceOutcome:
    """
    What the HTTP layer sends back.

    On success ``content`` holds the provider body verbatim; on failure
    ``body`` holds the error envelope.
    """
    status_code: int
    request_id: str
    state: IssuanceState
    history: Tuple[IssuanceState, ...]
    content: Optional[bytes] = None
    body: Optional[Dict[str, Any]] = None
    error: Optional[NormalizedError] = None

    @property
    def succeeded(self) -> bool:
        return self.state == IssuanceState.SUCCEEDED


# =============================================================================
# Pipeline
# =============================================================================

class IssuancePipeline:
    """
    Sequences validation → signing → provider call → response mapping.

    Holds only read-only collaborators, so one instance serves all
    concurrent requests.

    Example Usage:
        pipeline = IssuancePipeline(signer, client)
        outcome = await pipeline.run(body)
    """

    def __init__(
        self,
        signer: TilloSigner,
        client: TilloClient,
        timestamp_factory: Callable[[], str] = generate_timestamp,
        request_id_factory: Callable[[], str] = generate_request_id
    ):
        self.signer = signer
        self.client = client
        self._timestamp_factory = timestamp_factory
        self._request_id_factory = request_id_factory

    def start(self) -> IssuanceRun:
        return IssuanceRun(request_id=self._request_id_factory())

    # ------------------------------------------------------------------
    # Per-state steps
    # ------------------------------------------------------------------

    def validate_step(
        self,
        run: IssuanceRun,
        raw: Any
    ) -> Result[ProviderRequest, NormalizedError]:
        """VALIDATING: translate the caller body into the wire payload."""
        result = translate(raw, correlation_id=run.request_id)
        if result.is_failure:
            return Result.fail(normalize_validation(result.error, run.request_id))
        return Result.ok(result.value)

    def sign_step(
        self,
        run: IssuanceRun,
        request: ProviderRequest
    ) -> Result[SignedHeaders, NormalizedError]:
        """
        SIGNING: sign the first brand with a fresh timestamp.

        The returned SignedHeaders carries that timestamp into the call so
        signature and header can never disagree.
        """
        try:
            amount = signature_amount(request)
        except ValueError:
            error = IssuanceValidationError(errors=["amount must be a positive number"])
            return Result.fail(normalize_validation(error, run.request_id))

        signed = self.signer.sign_issue(
            client_request_id=request.client_request_id,
            brand=request.signing_brand,
            amount=amount,
            currency=request.face_value.currency,
            timestamp=self._timestamp_factory(),
        )
        return Result.ok(signed)

    async def call_step(
        self,
        run: IssuanceRun,
        request: ProviderRequest,
        signed: SignedHeaders
    ) -> Result[ProviderResponse, NormalizedError]:
        """CALLING: one outbound request, failures normalized."""
        logger.info(
            f"[RELAY-ISSUE] Processing gift card request | "
            f"request_id={run.request_id} | "
            f"client_request_id={request.client_request_id} | "
            f"choices={request.choices}"
        )

        result = await self.client.issue(
            request.to_wire(),
            signed,
            correlation_id=run.request_id,
        )

        latency_ms = result.value.latency_ms if result.success else result.error.latency_ms
        record_provider_latency(latency_ms)

        if result.is_failure:
            return Result.fail(normalize(result.error, run.request_id))
        return Result.ok(result.value)

    def respond(
        self,
        run: IssuanceRun,
        result: Result[ProviderResponse, NormalizedError]
    ) -> IssuanceOutcome:
        """RESPONDING: map the result to the terminal outcome."""
        if result.success:
            run.transition(IssuanceState.SUCCEEDED)
            logger.info(
                f"[RELAY-ISSUE] Gift card request successful | "
                f"request_id={run.request_id} | status={result.value.status_code}"
            )
            record_issuance_outcome("success", run.request_id)
            return IssuanceOutcome(
                status_code=200,
                request_id=run.request_id,
                state=run.state,
                history=tuple(run.history),
                content=result.value.content,
            )

        error = result.error
        run.transition(IssuanceState.FAILED)
        logger.log(
            logging.ERROR if error.http_status >= 500 else logging.WARNING,
            f"[RELAY-ISSUE-001] Gift card request failed | "
            f"request_id={run.request_id} | category={error.category.value} | "
            f"status={error.http_status} | error_code={error.error_code} | "
            f"details={error.details}"
        )
        record_issuance_outcome(error.category.value, run.request_id)
        return IssuanceOutcome(
            status_code=error.http_status,
            request_id=run.request_id,
            state=run.state,
            history=tuple(run.history),
            body=error.to_envelope(),
            error=error,
        )

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, raw: Any) -> IssuanceOutcome:
        """
        Process one issuance request end to end.

        Args:
            raw: Decoded caller JSON body

        Returns:
            IssuanceOutcome in a terminal state
        """
        run = self.start()

        validated = self.validate_step(run, raw)
        if validated.is_failure:
            run.transition(IssuanceState.RESPONDING)
            return self.respond(run, Result.fail(validated.error))

        run.transition(IssuanceState.SIGNING)
        signed = self.sign_step(run, validated.value)
        if signed.is_failure:
            run.transition(IssuanceState.RESPONDING)
            return self.respond(run, Result.fail(signed.error))

        run.transition(IssuanceState.CALLING)
        called = await self.call_step(run, validated.value, signed.value)

        run.transition(IssuanceState.RESPONDING)
        return self.respond(run, called)
