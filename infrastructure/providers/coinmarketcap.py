import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import httpx

from domain.exceptions.provider import (
    ConfigurationError,
    InvalidInputError,
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.crypto import Coin, Currency, PriceProviderSource, Quote
from domain.normalization import lookup_currency, to_decimal, unique_currencies
from infrastructure.providers.base import BaseAPIProvider, PriceProvider

logger = logging.getLogger(__name__)


class CoinMarketCapProvider(BaseAPIProvider, PriceProvider):
    BASE_URL = "https://pro-api.coinmarketcap.com"
    COIN_IDS = {Coin.ETH: 1027}

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
        max_attempts: int = 2,
        base_url: str = BASE_URL,
    ):
        if not api_key:
            raise ConfigurationError("COINMARKETCAP_API_KEY is required for the coinmarketcap provider")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        super().__init__(client or httpx.AsyncClient(timeout=timeout), max_attempts)

    @property
    def name(self) -> PriceProviderSource:
        return PriceProviderSource.COINMARKETCAP

    async def get_quotes(self, coin: Coin, currencies: Sequence[Currency]) -> list[Quote]:
        requested = unique_currencies(currencies)
        coin_id = self.COIN_IDS.get(coin)
        if coin_id is None:
            raise InvalidInputError(f"{coin.value} is not supported by {self.provider_id}")

        data = await self._request(
            "GET",
            f"{self.base_url}/v2/cryptocurrency/quotes/latest",
            params={"id": str(coin_id), "convert": ",".join(c.value for c in requested)},
            headers={"X-CMC_PRO_API_KEY": self.api_key, "Accept": "application/json"},
        )
        self._check_status(data)

        prices = self._read_quote_map(data, coin_id)
        fetched_at = datetime.now(UTC)
        quotes = []
        for currency in requested:
            entry = prices.get(currency)
            if not isinstance(entry, dict) or entry.get("price") is None:
                raise MalformedResponse(
                    self.provider_id, f"Price not found for {coin.value} in {currency.value}"
                )
            try:
                price = to_decimal(entry["price"])
            except ValueError as e:
                raise MalformedResponse(self.provider_id, f"Invalid {currency.value} price: {e}") from e
            if price == 0:
                raise MalformedResponse(self.provider_id, f"Zero {currency.value} price reported")

            quotes.append(
                Quote(
                    coin=coin,
                    currency=currency,
                    price=price,
                    provider=self.name,
                    timestamp=_parse_timestamp(entry.get("last_updated")) or fetched_at,
                )
            )
        return quotes

    def _check_status(self, data) -> None:
        if not isinstance(data, dict):
            raise MalformedResponse(self.provider_id, "Response body is not an object")
        status = data.get("status") or {}
        error_code = status.get("error_code") or 0
        if error_code:
            message = status.get("error_message") or "Unknown error"
            kind = ProviderErrorKind.RATE_LIMITED if error_code in (1008, 1011) else None
            raise UpstreamRejected(self.provider_id, f"CoinMarketCap error {error_code}: {message}", kind)

    def _read_quote_map(self, data: dict, coin_id: int) -> dict[Currency, dict]:
        try:
            entry = data["data"][str(coin_id)]
            # v2 returns a list per id when several assets share it
            if isinstance(entry, list):
                entry = entry[0]
            raw_quotes = entry["quote"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse(self.provider_id, f"No quote data for id {coin_id}") from e

        prices = {}
        for code, value in raw_quotes.items():
            currency = lookup_currency(code)
            if currency is None:
                raise MalformedResponse(self.provider_id, f"Unrecognized currency code '{code}' in response")
            prices[currency] = value
        return prices


def _parse_timestamp(value) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable last_updated value: {value}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
