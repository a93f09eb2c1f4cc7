"""Money: a rental price or payment amount with its currency."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# Charged in whole units by the gateway (no cents).
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }
)


def quantize_amount(amount: Decimal) -> Decimal:
    """Round half up to whole cents."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    A non-negative amount in cents precision.

    ``currency_code`` is normalized to upper case (``usd`` -> ``USD``).
    """

    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        amount = self.amount if isinstance(self.amount, Decimal) else Decimal(str(self.amount))
        currency = self.currency_code.upper()
        if len(currency) != 3:
            raise ValueError(f"Unknown currency code: {self.currency_code}")
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount}")
        object.__setattr__(self, "amount", quantize_amount(amount))
        object.__setattr__(self, "currency_code", currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency_code}"

    def to_minor_units(self) -> int:
        """Amount in the smallest unit the payment gateway charges in."""
        if self.currency_code in ZERO_DECIMAL_CURRENCIES:
            return int(self.amount.to_integral_value(rounding=ROUND_HALF_UP))
        return int(self.amount * 100)
