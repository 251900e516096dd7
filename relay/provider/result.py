# ============================================================================
# Gift Card Relay v1.0.0
# Result - Explicit Success/Failure Values
# ============================================================================
#
# Purpose: Every pipeline stage returns a Result instead of raising, so each
#          failure path is an inspectable value.
#
# ============================================================================

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """
    Success/failure variant.

    Exactly one of ``value`` or ``error`` is meaningful, selected by
    ``success``. Build instances with ``Result.ok()`` / ``Result.fail()``.

    Example Usage:
        result = translate(body)
        if result.success:
            payload = result.value
        else:
            errors = result.error.errors
    """
    success: bool
    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: E) -> "Result[T, E]":
        return cls(success=False, error=error)

    @property
    def is_failure(self) -> bool:
        return not self.success
