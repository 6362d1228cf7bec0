"""Money value object with currency-aware arithmetic."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union


# Currency precision rules for settlement/display
CURRENCY_DECIMALS = {
    'USD': 2, 'EUR': 2, 'GBP': 2, 'MXN': 2,
    'AUD': 2, 'THB': 2, 'IDR': 0, 'MVR': 2,
    'JPY': 0,
}


class CurrencyMismatchError(ValueError):
    """Raised when attempting operations between different currencies."""
    pass


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round to specified decimal places using banker's rounding."""
    return Decimal(amount).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class Money:
    """
    Immutable money value object.

    Always normalizes amount to Decimal for precision.

    Usage:
        price = Money(Decimal("45.00"), "USD")
        total = price * 7  # Money(Decimal("315.00"), "USD")
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        """Normalize amount to Decimal."""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(Decimal("0"), currency)

    def quantized(self) -> 'Money':
        """Return quantized to currency decimals (banker's rounding)."""
        decimals = CURRENCY_DECIMALS.get(self.currency, 2)
        return Money(round_money(self.amount, decimals), self.currency)

    def _check_currency(self, other: 'Money', verb: str):
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot {verb} {self.currency} and {other.currency}"
            )

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Union[Decimal, int]) -> 'Money':
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def __rmul__(self, factor: Union[Decimal, int]) -> 'Money':
        return self.__mul__(factor)

    def __str__(self):
        return f"{self.quantized().amount} {self.currency}"

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_zero(self) -> bool:
        return self.amount == 0
