"""
Unit Tests for the Amount Gateway

The signature amount and the body amount must always render the same way.
"""

import json
from decimal import Decimal

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from relay.provider.amount_gateway import AmountGateway


@pytest.fixture
def gateway() -> AmountGateway:
    return AmountGateway()


class TestToWire:

    def test_integral_float_becomes_int(self, gateway: AmountGateway) -> None:
        result = gateway.to_wire(10.00)
        assert result == 10
        assert isinstance(result, int)

    def test_int_stays_int(self, gateway: AmountGateway) -> None:
        assert gateway.to_wire(100) == 100
        assert isinstance(gateway.to_wire(100), int)

    def test_fractional_stays_float(self, gateway: AmountGateway) -> None:
        result = gateway.to_wire(12.50)
        assert result == 12.5
        assert isinstance(result, float)

    def test_decimal_input(self, gateway: AmountGateway) -> None:
        assert gateway.to_wire(Decimal("25.10")) == 25.1


class TestToSignature:

    @pytest.mark.parametrize("value,expected", [
        (10.00, "10"),
        (10, "10"),
        (100, "100"),
        (12.5, "12.5"),
        (0.99, "0.99"),
        (1000.01, "1000.01"),
    ])
    def test_rendering(self, gateway: AmountGateway, value, expected: str) -> None:
        assert gateway.to_signature(value) == expected

    @pytest.mark.parametrize("value", [10.0, 12.5, 0.01, 250, 19.99])
    def test_matches_json_body(self, gateway: AmountGateway, value) -> None:
        assert gateway.to_signature(value) == json.dumps(gateway.to_wire(value))


class TestRejection:

    @pytest.mark.parametrize("value", [0, -5, float("nan"), float("inf"), None, True, "abc"])
    def test_invalid_amounts_raise(self, gateway: AmountGateway, value) -> None:
        with pytest.raises(ValueError):
            gateway.to_decimal(value)


class TestLargeAmounts:

    @pytest.mark.parametrize("value", [1e30, 10**30])
    def test_beyond_default_precision_stays_integral(self, gateway: AmountGateway, value) -> None:
        assert gateway.to_wire(value) == 10**30
        assert gateway.to_signature(value) == "1" + "0" * 30

    def test_long_integer_keeps_every_digit(self, gateway: AmountGateway) -> None:
        value = 1234567890123456789012345678901
        assert gateway.to_wire(value) == value
        assert gateway.to_signature(value) == json.dumps(value)
