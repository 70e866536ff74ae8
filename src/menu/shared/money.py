"""Money value object for monetary amounts with currency.

Amounts are held as an integer count of the currency's minor units (kopiyky
for UAH, cents for USD). Decimal text such as ``"60.00"`` is only accepted or
produced at serialization boundaries, always together with the currency it
is expressed in.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import total_ordering

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from menu.domain import menu
from shared.exceptions import CurrencyMismatchError

DEFAULT_CURRENCY = "UAH"

VALID_CURRENCIES = frozenset(
    {
        "UAH",
        "USD",
        "EUR",
        "GBP",
        "PLN",
        "CZK",
        "JPY",
        "CAD",
        "AUD",
        "CHF",
        "NOK",
        "SEK",
        "DKK",
        "KRW",
    }
)

# Currencies without a fractional minor unit
_ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})

_SYMBOLS = {
    "UAH": "₴",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "PLN": "zł",
    "JPY": "¥",
    "KRW": "₩",
}


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places between the major and minor unit."""
    return 0 if currency in _ZERO_DECIMAL_CURRENCIES else 2


def _to_minor_units(value, currency: str) -> int:
    if isinstance(value, float):
        raise TypeError("Money cannot be built from a binary float; use str, int or Decimal")

    try:
        major = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid money amount: {value!r}") from None

    if not major.is_finite():
        raise ValueError(f"Invalid money amount: {value!r}")

    scaled = major.scaleb(minor_unit_exponent(currency))
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} is more precise than the {currency} minor unit")
    return int(scaled)


@menu.value_object
@total_ordering
class Money:
    """Value object representing a non-negative amount of one currency."""

    amount: Integer(required=True, min_value=0)
    currency: String(max_length=3, default=DEFAULT_CURRENCY)

    @invariant.post
    def currency_must_be_valid_iso_4217(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def of(cls, value: str | int | Decimal, currency: str = DEFAULT_CURRENCY) -> "Money":
        """Build Money from a major-unit value, e.g. ``Money.of("60.00", "UAH")``."""
        return cls(amount=_to_minor_units(value, currency), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(amount=0, currency=currency)

    # -------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------
    def _require_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(f"Cannot combine {self.currency} with {other.currency}")

    def __add__(self, other):
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __radd__(self, other):
        # Lets the built-in sum() start from 0
        if other == 0:
            return self
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        return Money(amount=self.amount * other, currency=self.currency)

    __rmul__ = __mul__

    def times(self, factor: int | Decimal) -> "Money":
        """Multiply by a fractional factor, rounding half-up to the minor unit."""
        if isinstance(factor, float):
            raise TypeError("Money cannot be multiplied by a binary float; use Decimal")
        product = (Decimal(self.amount) * Decimal(factor)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return Money(amount=int(product), currency=self.currency)

    def __lt__(self, other):
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.amount < other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    # -------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------
    def to_decimal(self) -> Decimal:
        return Decimal(self.amount).scaleb(-minor_unit_exponent(self.currency))

    def __str__(self) -> str:
        return f"{self.to_decimal():f}"

    def formatted(self) -> str:
        """Display text with at most two fraction digits, e.g. ``₴75`` or ``₴75.5``."""
        text = str(self)
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        symbol = _SYMBOLS.get(self.currency)
        return f"{symbol}{text}" if symbol else f"{text} {self.currency}"
