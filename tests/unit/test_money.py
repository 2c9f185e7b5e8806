"""Unit tests for integer-cent money helpers."""

from decimal import Decimal

import pytest

from src.services.money import (
    floor_share_cents,
    from_cents,
    is_valid_amount,
    quantize_cent,
    quantize_percent,
    to_cents,
)


class TestCentConversion:
    def test_to_cents(self):
        assert to_cents(Decimal("123.45")) == 12345
        assert to_cents("0.01") == 1
        assert to_cents(10) == 1000

    def test_to_cents_rounds_sub_cent_half_up(self):
        assert to_cents(Decimal("0.005")) == 1
        assert to_cents(Decimal("0.004")) == 0

    def test_from_cents_has_two_places(self):
        assert from_cents(12345) == Decimal("123.45")
        assert str(from_cents(100)) == "1.00"
        assert str(from_cents(0)) == "0.00"

    def test_quantize(self):
        assert quantize_cent("1.005") == Decimal("1.01")
        assert quantize_percent(Decimal("33.3333")) == Decimal("33.33")


class TestFloorShareCents:
    def test_exact_share(self):
        assert floor_share_cents(Decimal("1"), Decimal("4"), 10000) == 2500

    def test_floors_fractional_cents(self):
        assert floor_share_cents(Decimal("2"), Decimal("3"), 10000) == 6666

    def test_multiplies_before_dividing(self):
        # 0.1 / 0.3 * 30 would drift below 10 in binary floating point
        assert floor_share_cents(Decimal("0.1"), Decimal("0.3"), 30) == 10


class TestIsValidAmount:
    @pytest.mark.parametrize("amount", ["0.01", "100", "99999.99"])
    def test_positive_amounts(self, amount):
        assert is_valid_amount(Decimal(amount))

    @pytest.mark.parametrize("amount", ["0", "0.00", "-1", "-0.01", "NaN", "Infinity"])
    def test_rejected_amounts(self, amount):
        assert not is_valid_amount(Decimal(amount))

    def test_none(self):
        assert not is_valid_amount(None)
