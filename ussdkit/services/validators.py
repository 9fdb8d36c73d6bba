"""Field validators for USSD data-collection flows.

A validator takes the raw answer typed by the user and returns a
:class:`FieldCheck`.  Rejections are ordinary return values carrying the
message to show before re-prompting; nothing here raises for bad input.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


@dataclass(frozen=True, slots=True)
class FieldCheck:
    """Outcome of validating one answer."""

    value: str | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None

    @classmethod
    def accept(cls, value: str) -> FieldCheck:
        return cls(value=value)

    @classmethod
    def reject(cls, message: str) -> FieldCheck:
        return cls(error=message)


FieldValidator = Callable[[str], FieldCheck]


def require_text(error_message: str, *, max_length: int | None = None) -> FieldValidator:
    """Accept any non-blank answer, stripped of surrounding whitespace."""

    def validate(answer: str) -> FieldCheck:
        text = answer.strip()
        if not text:
            return FieldCheck.reject(error_message)
        if max_length is not None and len(text) > max_length:
            return FieldCheck.reject(f"Maximum {max_length} characters.")
        return FieldCheck.accept(text)

    return validate


def parse_amount(answer: str) -> Decimal | None:
    """Parse *answer* as a finite decimal, or return ``None``."""
    try:
        amount = Decimal(answer.strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def bounded_amount(
    ceiling: Decimal,
    *,
    invalid_message: str,
    range_message: str,
    places: int = 2,
) -> FieldValidator:
    """Accept strictly positive decimals not above *ceiling*.

    Non-numeric text and out-of-range numbers are rejected with distinct
    messages.  The amount is rounded half-up to *places* decimals before
    the lower bound is checked, so ``"1e-9"`` is rejected rather than
    shown as ``0.00``.  The accepted value is stored in plain positional
    notation without trailing zeros (``"1e3"`` becomes ``"1000"``,
    ``"12.50"`` becomes ``"12.5"``).
    """
    step = Decimal(1).scaleb(-places)

    def validate(answer: str) -> FieldCheck:
        amount = parse_amount(answer)
        if amount is None:
            return FieldCheck.reject(invalid_message)
        if amount <= 0 or amount > ceiling:
            return FieldCheck.reject(range_message)
        rounded = amount.quantize(step, rounding=ROUND_HALF_UP)
        if rounded <= 0 or rounded > ceiling:
            return FieldCheck.reject(range_message)
        return FieldCheck.accept(format(rounded.normalize(), "f"))

    return validate


def one_of(keys: Iterable[str], error_message: str) -> FieldValidator:
    """Accept only one of the menu *keys*."""
    allowed = frozenset(keys)

    def validate(answer: str) -> FieldCheck:
        choice = answer.strip()
        if choice not in allowed:
            return FieldCheck.reject(error_message)
        return FieldCheck.accept(choice)

    return validate
