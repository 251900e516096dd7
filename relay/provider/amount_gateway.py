# ============================================================================
# Gift Card Relay v1.0.0
# Amount Gateway - Face Value Rendering
# ============================================================================
#
# Purpose: One canonical rendering of the face value amount, shared by the
#          signature string and the outgoing JSON body.
#
# MANDATE:
#   - The signed amount and the body amount MUST render identically
#   - All conversion goes through decimal.Decimal via str()
#   - Trailing zeros are dropped (10.00 -> 10, 10.50 -> 10.5)
#
# Error Codes:
#   - RELAY-AMT-001: Amount conversion failed
#
# ============================================================================

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Optional, Union
import logging

logger = logging.getLogger(__name__)


WireAmount = Union[int, float]


class AmountGateway:
    """
    Face value gateway.

    The provider verifies the signature against the amount it parses from
    the body, so the string placed in the signature must be exactly what
    the JSON encoder writes for the body value.

    Example Usage:
        gateway = AmountGateway()
        gateway.to_wire(10.00)        # 10
        gateway.to_signature(10.00)   # "10"
        gateway.to_wire(12.5)         # 12.5
        gateway.to_signature(12.5)    # "12.5"
    """

    def to_decimal(self, value: Any, correlation_id: Optional[str] = None) -> Decimal:
        """
        Convert a caller amount to a normalized, strictly positive Decimal.

        Args:
            value: int, float, str or Decimal
            correlation_id: Audit trail identifier

        Returns:
            Normalized Decimal without trailing zeros or exponent

        Raises:
            ValueError: If value is not finite and positive (RELAY-AMT-001)
        """
        if isinstance(value, bool) or value is None:
            raise ValueError(f"RELAY-AMT-001: Cannot convert '{value}' to an amount")

        try:
            # Always via str() so binary float noise never leaks in
            decimal_value = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            logger.error(
                f"[RELAY-AMT-001] Amount conversion failed | "
                f"value={value} | type={type(value).__name__} | "
                f"correlation_id={correlation_id} | error={e}"
            )
            raise ValueError(
                f"RELAY-AMT-001: Cannot convert '{value}' to an amount"
            ) from e

        if not decimal_value.is_finite() or decimal_value <= 0:
            raise ValueError(
                f"RELAY-AMT-001: Amount must be a finite positive number, got {value}"
            )

        try:
            with localcontext() as ctx:
                # Wide enough that neither step rounds away caller digits
                ctx.prec = max(
                    ctx.prec,
                    len(decimal_value.as_tuple().digits),
                    decimal_value.adjusted() + 1,
                )
                normalized = decimal_value.normalize()
                # normalize() turns 100 into 1E+2
                if normalized == normalized.to_integral_value():
                    normalized = normalized.quantize(Decimal(1))
        except InvalidOperation as e:
            logger.error(
                f"[RELAY-AMT-001] Amount out of range | "
                f"value={value} | correlation_id={correlation_id} | error={e}"
            )
            raise ValueError(
                f"RELAY-AMT-001: Amount out of range, got {value}"
            ) from e
        return normalized

    def to_wire(self, value: Any, correlation_id: Optional[str] = None) -> WireAmount:
        """
        Render the amount for the JSON body.

        Integral amounts become int so the encoder writes "10" and not
        "10.0"; everything else is a float parsed from the normalized
        decimal string.
        """
        normalized = self.to_decimal(value, correlation_id)
        if normalized == normalized.to_integral_value():
            return int(normalized)
        return float(format(normalized, "f"))

    def to_signature(self, value: Any, correlation_id: Optional[str] = None) -> str:
        """Render the amount segment of the canonical signature string."""
        wire = self.to_wire(value, correlation_id)
        if isinstance(wire, int):
            return str(wire)
        # repr() is the shortest round-trip form, which is what json.dumps writes
        return repr(wire)
