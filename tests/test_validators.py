"""Tests for the field validators used by collection flows."""

from __future__ import annotations

from decimal import Decimal

import pytest

from ussdkit.services.validators import (
    FieldCheck,
    bounded_amount,
    one_of,
    parse_amount,
    require_text,
)


class TestRequireText:
    def test_accepts_and_strips(self) -> None:
        check = require_text("Name cannot be empty.")("  Alice  ")
        assert check.accepted is True
        assert check.value == "Alice", "surrounding whitespace should be stripped"

    @pytest.mark.parametrize("answer", ["", "   "])
    def test_rejects_blank(self, answer: str) -> None:
        check = require_text("Name cannot be empty.")(answer)
        assert check.accepted is False
        assert check.error == "Name cannot be empty."

    def test_max_length(self) -> None:
        validate = require_text("empty", max_length=5)
        assert validate("Alice").accepted is True
        check = validate("Alicia")
        assert check.accepted is False
        assert check.error == "Maximum 5 characters."


class TestParseAmount:
    @pytest.mark.parametrize(
        ("answer", "expected"),
        [("500", Decimal("500")), (" 12.50 ", Decimal("12.50")), ("-3", Decimal("-3"))],
    )
    def test_parses_decimals(self, answer: str, expected: Decimal) -> None:
        assert parse_amount(answer) == expected

    @pytest.mark.parametrize("answer", ["abc", "", "1,000", "NaN", "Infinity"])
    def test_rejects_non_numeric_and_non_finite(self, answer: str) -> None:
        assert parse_amount(answer) is None


class TestBoundedAmount:
    validate = staticmethod(
        bounded_amount(
            Decimal("100000"),
            invalid_message="Invalid amount.",
            range_message="Amount out of range.",
        )
    )

    def test_accepts_positive_within_ceiling(self) -> None:
        assert self.validate("500") == FieldCheck.accept("500")
        assert self.validate("100000").accepted is True, "ceiling is inclusive"

    def test_normalises_exponent_notation(self) -> None:
        assert self.validate("1e3").value == "1000"

    def test_rejects_text_with_invalid_message(self) -> None:
        assert self.validate("abc").error == "Invalid amount."

    @pytest.mark.parametrize("answer", ["0", "-5", "100000.01"])
    def test_rejects_out_of_range(self, answer: str) -> None:
        assert self.validate(answer).error == "Amount out of range."

    @pytest.mark.parametrize("answer", ["1e-20000000", "1e-999999999", "0.004"])
    def test_rejects_amounts_that_round_to_zero(self, answer: str) -> None:
        check = self.validate(answer)
        assert check.accepted is False, "an amount below one cent must not be accepted as positive"
        assert check.error == "Amount out of range."

    def test_rounds_to_cents(self) -> None:
        assert self.validate("0.005").value == "0.01", "half a cent rounds up"
        assert self.validate("12.345").value == "12.35"
        assert self.validate("12.50").value == "12.5", "trailing zeros are dropped"

    def test_rounding_up_to_ceiling_accepted(self) -> None:
        assert self.validate("99999.995").value == "100000"
        assert self.validate("100000.001").error == "Amount out of range.", "ceiling applies before rounding"

    def test_stored_value_stays_short(self) -> None:
        check = self.validate("1.5e-2")
        assert check.value == "0.02"
        assert len(self.validate("99999.999999999").value) <= len("100000.00")


class TestOneOf:
    def test_accepts_listed_key(self) -> None:
        assert one_of(["1", "2"], "Pick 1 or 2.")(" 2 ").value == "2"

    def test_rejects_other_answers(self) -> None:
        check = one_of(["1", "2"], "Pick 1 or 2.")("3")
        assert check.accepted is False
        assert check.error == "Pick 1 or 2."
