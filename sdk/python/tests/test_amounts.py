"""Tests for gliesereum_sdk.amounts."""

from __future__ import annotations

from decimal import Decimal

import pytest

from gliesereum_sdk.amounts import format_amount, from_raw_balance, to_raw_balance
from gliesereum_sdk.exceptions import InvalidAmountError


class TestFormatAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("50", "50.000000"),
            ("0.1234567", "0.123456"),
            ("0.9999999", "0.999999"),
            (5, "5.000000"),
            (Decimal("1E+2"), "100.000000"),
            (" 1.5 ", "1.500000"),
            ("0", "0.000000"),
        ],
    )
    def test_formatting(self, value: object, expected: str) -> None:
        assert format_amount(value) == expected  # type: ignore[arg-type]

    def test_custom_decimals(self) -> None:
        assert format_amount("1.5", 2) == "1.50"

    @pytest.mark.parametrize("bad", [1.5, True, "-1", "abc", "NaN", "Infinity", None])
    def test_rejected_inputs(self, bad: object) -> None:
        with pytest.raises(InvalidAmountError):
            format_amount(bad)  # type: ignore[arg-type]


class TestRawBalances:
    def test_to_raw(self) -> None:
        assert to_raw_balance("1.5") == 150_000_000

    def test_to_raw_truncates(self) -> None:
        assert to_raw_balance(Decimal("0.000000019")) == 1

    def test_from_raw(self) -> None:
        assert from_raw_balance(150_000_000) == "1.50000000"
        assert from_raw_balance("1") == "0.00000001"

    def test_from_raw_rejects_fraction(self) -> None:
        with pytest.raises(InvalidAmountError):
            from_raw_balance("1.5")

    def test_roundtrip(self) -> None:
        assert from_raw_balance(to_raw_balance("12.34567891")) == "12.34567891"
