"""
Unit Tests for the Issuance Pipeline State Machine

Tests:
- Transition table and terminal states
- Per-state steps with a fake provider client
- Full runs for every outcome category
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from relay.logic.issuance_pipeline import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    IssuancePipeline,
    IssuanceRun,
    IssuanceState,
    IssuanceStateErrorCode,
    InvalidTransitionError,
    validate_transition,
)
from relay.provider.error_normalizer import ErrorCategory
from relay.provider.hmac_signer import TilloSigner, sign
from relay.provider.result import Result
from relay.provider.tillo_client import ProviderFailure, ProviderResponse


TIMESTAMP = "1700000000000"
FIXTURE_DIGEST = "3fba8c705eb9ae51fb7ad0877cf719485290fbc433cdd1b08d04280c80546952"


class FakeTilloClient:
    """Records every call and replays a canned result."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    async def issue(self, payload, signed, correlation_id=None):
        self.calls.append((payload, signed, correlation_id))
        return self.result


def ok_result(content: bytes = b'{"status":"success"}'):
    return Result.ok(ProviderResponse(status_code=200, content=content, latency_ms=12.0))


def make_pipeline(result) -> tuple:
    client = FakeTilloClient(result)
    pipeline = IssuancePipeline(
        signer=TilloSigner(api_key="K", secret="S"),
        client=client,
        timestamp_factory=lambda: TIMESTAMP,
        request_id_factory=lambda: "rid-1",
    )
    return pipeline, client


VALID_BODY = {"amount": 10, "brandIdentifier": "brand-x", "clientRequestId": "req-1"}


# =============================================================================
# Transition table
# =============================================================================

class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        (IssuanceState.VALIDATING, IssuanceState.SIGNING),
        (IssuanceState.VALIDATING, IssuanceState.RESPONDING),
        (IssuanceState.SIGNING, IssuanceState.CALLING),
        (IssuanceState.SIGNING, IssuanceState.RESPONDING),
        (IssuanceState.CALLING, IssuanceState.RESPONDING),
        (IssuanceState.RESPONDING, IssuanceState.SUCCEEDED),
        (IssuanceState.RESPONDING, IssuanceState.FAILED),
    ])
    def test_valid_transitions(self, current, target) -> None:
        assert validate_transition(current, target) == (True, None)

    @pytest.mark.parametrize("current,target", [
        (IssuanceState.VALIDATING, IssuanceState.CALLING),
        (IssuanceState.CALLING, IssuanceState.SIGNING),
        (IssuanceState.CALLING, IssuanceState.SUCCEEDED),
        (IssuanceState.SUCCEEDED, IssuanceState.FAILED),
        (IssuanceState.FAILED, IssuanceState.VALIDATING),
    ])
    def test_invalid_transitions(self, current, target) -> None:
        assert validate_transition(current, target) == (
            False, IssuanceStateErrorCode.INVALID_TRANSITION
        )

    def test_terminal_states_have_no_exits(self) -> None:
        for state in TERMINAL_STATES:
            assert VALID_TRANSITIONS[state] == []

    def test_run_raises_on_invalid_transition(self) -> None:
        run = IssuanceRun(request_id="r")
        with pytest.raises(InvalidTransitionError) as exc_info:
            run.transition(IssuanceState.SUCCEEDED)
        assert exc_info.value.error_code == "RELAY-STATE-001"
        assert run.state == IssuanceState.VALIDATING

    def test_run_cannot_leave_terminal_state(self) -> None:
        run = IssuanceRun(request_id="r")
        run.transition(IssuanceState.RESPONDING)
        run.transition(IssuanceState.FAILED)
        assert run.is_terminal is True
        with pytest.raises(InvalidTransitionError):
            run.transition(IssuanceState.RESPONDING)


# =============================================================================
# Steps
# =============================================================================

class TestSteps:

    def test_sign_step_signs_first_brand_with_factory_timestamp(self) -> None:
        pipeline, _ = make_pipeline(ok_result())
        run = pipeline.start()
        request = pipeline.validate_step(
            run, dict(VALID_BODY, brandIdentifier=["brand-x", "brand-y"])
        ).value

        signed = pipeline.sign_step(run, request).value

        assert signed.timestamp == TIMESTAMP
        assert signed.signature == FIXTURE_DIGEST

    def test_validate_step_failure_is_normalized(self) -> None:
        pipeline, _ = make_pipeline(ok_result())
        result = pipeline.validate_step(pipeline.start(), {})

        assert result.is_failure
        assert result.error.http_status == 400
        assert result.error.request_id == "rid-1"

    @pytest.mark.asyncio
    async def test_call_step_passes_wire_payload_and_headers(self) -> None:
        pipeline, client = make_pipeline(ok_result())
        run = pipeline.start()
        request = pipeline.validate_step(run, VALID_BODY).value
        signed = pipeline.sign_step(run, request).value

        result = await pipeline.call_step(run, request, signed)

        assert result.success is True
        payload, sent_headers, correlation_id = client.calls[0]
        assert payload == request.to_wire()
        assert sent_headers is signed
        assert correlation_id == "rid-1"


# =============================================================================
# Full runs
# =============================================================================

class TestRun:

    @pytest.mark.asyncio
    async def test_success_passes_body_through(self) -> None:
        pipeline, client = make_pipeline(ok_result(b'{"status":"success","data":{}}'))

        outcome = await pipeline.run(VALID_BODY)

        assert outcome.succeeded is True
        assert outcome.status_code == 200
        assert outcome.content == b'{"status":"success","data":{}}'
        assert outcome.history == (
            IssuanceState.VALIDATING,
            IssuanceState.SIGNING,
            IssuanceState.CALLING,
            IssuanceState.RESPONDING,
            IssuanceState.SUCCEEDED,
        )
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_end_to_end_fixture(self) -> None:
        """10.00 with a one-element brand list signs and sends as 10."""
        pipeline, client = make_pipeline(ok_result())

        await pipeline.run({
            "amount": 10.00,
            "brandIdentifier": ["brand-x"],
            "clientRequestId": "req-1",
            "currency": "USD",
        })

        payload, signed, _ = client.calls[0]
        assert signed.signature == FIXTURE_DIGEST
        assert signed.timestamp == TIMESTAMP
        assert payload == {
            "client_request_id": "req-1",
            "choices": ["brand-x"],
            "face_value": {"amount": 10, "currency": "USD"},
            "delivery_method": "url",
            "fulfilment_by": "partner",
            "sector": "marketplace",
        }

    @pytest.mark.asyncio
    async def test_very_large_amount_is_forwarded(self) -> None:
        pipeline, client = make_pipeline(ok_result())

        outcome = await pipeline.run(dict(VALID_BODY, amount=1e30))

        assert outcome.succeeded is True
        payload, signed, _ = client.calls[0]
        assert payload["face_value"]["amount"] == 10**30
        assert signed.signature == sign(
            "S", "K", "req-1", "brand-x", "1" + "0" * 30, "USD", TIMESTAMP
        )

    @pytest.mark.asyncio
    async def test_validation_failure_never_calls_provider(self) -> None:
        pipeline, client = make_pipeline(ok_result())

        outcome = await pipeline.run({"amount": 10, "clientRequestId": "req-1"})

        assert client.calls == []
        assert outcome.state == IssuanceState.FAILED
        assert outcome.status_code == 400
        assert outcome.body == {
            "error": "Validation failed",
            "details": ["brandIdentifier is required"],
            "requestId": "rid-1",
        }
        assert outcome.history == (
            IssuanceState.VALIDATING,
            IssuanceState.RESPONDING,
            IssuanceState.FAILED,
        )

    @pytest.mark.asyncio
    async def test_provider_rejection(self) -> None:
        failure = ProviderFailure(status_code=402, body={"error_code": "INSUFFICIENT_FUNDS"})
        pipeline, _ = make_pipeline(Result.fail(failure))

        outcome = await pipeline.run(VALID_BODY)

        assert outcome.status_code == 402
        assert outcome.error.category == ErrorCategory.PROVIDER_REJECTION
        assert outcome.body["error_code"] == "INSUFFICIENT_FUNDS"
        assert outcome.body["error"] == "Insufficient funds for this transaction"

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        pipeline, _ = make_pipeline(Result.fail(ProviderFailure(transport_error="timeout")))

        outcome = await pipeline.run(VALID_BODY)

        assert outcome.status_code == 500
        assert outcome.error.category == ErrorCategory.TRANSPORT_FAILURE
        assert outcome.body == {
            "error": "Failed to process gift card request",
            "details": "timeout",
            "requestId": "rid-1",
        }

    @pytest.mark.asyncio
    async def test_fresh_timestamp_each_run(self) -> None:
        stamps = iter(["1000", "2000"])
        client = FakeTilloClient(ok_result())
        pipeline = IssuancePipeline(
            signer=TilloSigner(api_key="K", secret="S"),
            client=client,
            timestamp_factory=lambda: next(stamps),
        )

        await pipeline.run(VALID_BODY)
        await pipeline.run(VALID_BODY)

        first, second = client.calls[0][1], client.calls[1][1]
        assert (first.timestamp, second.timestamp) == ("1000", "2000")
        assert first.signature == sign("S", "K", "req-1", "brand-x", "10", "USD", "1000")
        assert first.signature != second.signature
