"""
Value objects (``club_kernel.domain.values``).

Responsibility
--------------
``Money`` -- an immutable amount in integer minor units (cents) plus an
ISO 4217 currency code.  All budget, expense, payment and dues amounts
flow through this type or through plain ``int`` cents.

Invariants enforced
-------------------
* Amounts are ``int`` cents.  ``float`` is rejected at construction,
  so no floating point can enter a persisted or computed total.
* Arithmetic and comparison require matching currencies.
* Decimal conversion happens only at the presentation boundary
  (``from_decimal`` / ``to_decimal`` / ``format``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from club_kernel.exceptions import CurrencyMismatchError, ValidationError

_CENTS = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "EUR": "€",
    "GBP": "£",
}


def _require_cents(value: object, field: str = "amount") -> int:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field} must be an integer number of cents, got {type(value).__name__}",
            field=field,
        )
    return value


def _require_currency(code: object) -> str:
    if not isinstance(code, str) or len(code) != 3 or not code.isalpha() or not code.isupper():
        raise ValidationError(f"Invalid currency code: {code!r}", field="currency")
    return code


@dataclass(frozen=True, slots=True)
class Money:
    """An immutable amount of money in integer cents."""

    cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        _require_cents(self.cents)
        _require_currency(self.currency)

    @classmethod
    def of(cls, cents: int, currency: str = "USD") -> Money:
        return cls(cents, currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> Money:
        return cls(0, currency)

    @classmethod
    def from_decimal(cls, amount: Decimal | str, currency: str = "USD") -> Money:
        """Parse a major-unit amount (``Decimal("85.00")``), rounding half-up to the cent."""
        if isinstance(amount, float):
            raise ValidationError("amount must not be a float", field="amount")
        quantized = Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
        return cls(int(quantized * 100), currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(_CENTS)

    def format(self) -> str:
        """Human-readable form, e.g. ``$85.00``."""
        symbol = CURRENCY_SYMBOLS.get(self.currency)
        sign = "-" if self.cents < 0 else ""
        major = (Decimal(abs(self.cents)) / 100).quantize(_CENTS)
        if symbol is None:
            return f"{sign}{major:,} {self.currency}"
        return f"{sign}{symbol}{major:,}"

    @property
    def is_zero(self) -> bool:
        return self.cents == 0

    @property
    def is_positive(self) -> bool:
        return self.cents > 0

    def _check(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.cents + other.cents, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.cents - other.cents, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.cents, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._check(other)
        return self.cents < other.cents

    def __le__(self, other: Money) -> bool:
        self._check(other)
        return self.cents <= other.cents

    def __gt__(self, other: Money) -> bool:
        self._check(other)
        return self.cents > other.cents

    def __ge__(self, other: Money) -> bool:
        self._check(other)
        return self.cents >= other.cents

    def __str__(self) -> str:
        return self.format()


def sum_cents(amounts: Iterable[int]) -> int:
    """Integer sum of cent amounts; rejects non-integers."""
    total = 0
    for amount in amounts:
        total += _require_cents(amount)
    return total


def require_positive_cents(value: object, field: str = "amount") -> int:
    cents = _require_cents(value, field)
    if cents <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return cents


def require_non_negative_cents(value: object, field: str = "amount") -> int:
    cents = _require_cents(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return cents
