from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Coin(str, Enum):
    ETH = "ETH"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    CHF = "CHF"
    CNY = "CNY"
    GBP = "GBP"
    JPY = "JPY"
    CAD = "CAD"
    AUD = "AUD"

    @property
    def symbol(self) -> str:
        return _CURRENCY_SYMBOLS[self]


_CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.CHF: "CHF",
    Currency.CNY: "¥",
    Currency.GBP: "£",
    Currency.JPY: "¥",
    Currency.CAD: "C$",
    Currency.AUD: "A$",
}


class PriceProviderSource(str, Enum):
    COINMARKETCAP = "coinmarketcap"
    COINGECKO = "coingecko"


@dataclass(frozen=True)
class QuotePerAmount:
    amount: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class Quote:
    """Price of one unit of `coin` in `currency`, as reported by a single provider."""

    coin: Coin
    currency: Currency
    price: Decimal
    provider: PriceProviderSource
    timestamp: datetime
    quote_per_amount: QuotePerAmount | None = None

    def __post_init__(self):
        if self.quote_per_amount is None:
            object.__setattr__(
                self, "quote_per_amount", QuotePerAmount(amount=Decimal(1), total_price=self.price)
            )

    def with_amount(self, amount: Decimal) -> "Quote":
        """Return a copy of this quote priced for `amount` units of the coin."""
        return replace(
            self,
            quote_per_amount=QuotePerAmount(amount=amount, total_price=self.price * amount),
        )


@dataclass(frozen=True)
class ProviderQuotes:
    """Successful result of one provider leg of a price fan-out."""

    provider: PriceProviderSource
    quotes: tuple[Quote, ...]
