"""
============================================================================
Gift Card Relay v1.0.0
Logic Layer - Request Translation and Issuance Orchestration
============================================================================
"""

from relay.logic.translator import translate, validate
from relay.logic.issuance_pipeline import (
    IssuancePipeline,
    IssuanceOutcome,
    IssuanceRun,
    IssuanceState,
    InvalidTransitionError,
    VALID_TRANSITIONS,
    TERMINAL_STATES,
    validate_transition,
)

__all__ = [
    "translate",
    "validate",
    "IssuancePipeline",
    "IssuanceOutcome",
    "IssuanceRun",
    "IssuanceState",
    "InvalidTransitionError",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
]
