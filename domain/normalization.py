"""
Pure helpers that map provider-specific codes and units onto the canonical model.

Gas prices are canonically expressed in gwei as ``Decimal``; prices keep the
provider's precision by going through the shortest decimal representation of
the upstream number.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from domain.exceptions.provider import InvalidInputError
from domain.models.crypto import Currency

WEI_PER_GWEI = Decimal(10**9)


def lookup_currency(code: str) -> Currency | None:
    """Case-insensitive lookup in the closed currency set."""
    if not isinstance(code, str):
        return None
    try:
        return Currency(code.strip().upper())
    except ValueError:
        return None


def parse_currency(code: str) -> Currency:
    currency = lookup_currency(code)
    if currency is None:
        supported = ", ".join(c.value for c in Currency)
        raise InvalidInputError(f"Unsupported currency '{code}'. Supported: {supported}")
    return currency


def unique_currencies(currencies: Iterable[Currency]) -> list[Currency]:
    """Drop repeats while keeping request order; an empty request is invalid."""
    ordered = list(dict.fromkeys(currencies))
    if not ordered:
        raise InvalidInputError("At least one currency must be requested")
    return ordered


def to_decimal(value) -> Decimal:
    """
    Convert a JSON number or numeric string to Decimal without float rounding.

    Raises ValueError for anything that is not a finite, non-negative number.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite() or result < 0:
        raise ValueError(f"Not a finite non-negative number: {value!r}")
    return result


def hex_to_int(value: str) -> int:
    """Decode a JSON-RPC hex quantity such as ``"0x2cb417800"``."""
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    return int(value, 16)


def wei_to_gwei(wei: int | Decimal) -> Decimal:
    return Decimal(wei) / WEI_PER_GWEI


def clamp_monotonic(low: Decimal, average: Decimal, high: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """Raise average and high as needed so that low <= average <= high."""
    average = max(average, low)
    high = max(high, average)
    return low, average, high
