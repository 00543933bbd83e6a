from collections.abc import Sequence
from datetime import UTC, datetime

import httpx

from domain.exceptions.provider import (
    InvalidInputError,
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.crypto import Coin, Currency, PriceProviderSource, Quote
from domain.normalization import lookup_currency, to_decimal, unique_currencies
from infrastructure.providers.base import BaseAPIProvider, PriceProvider


class CoinGeckoProvider(BaseAPIProvider, PriceProvider):
    BASE_URL = "https://api.coingecko.com/api/v3"
    COIN_IDS = {Coin.ETH: "ethereum"}
    TIMESTAMP_KEY = "last_updated_at"

    def __init__(
        self,
        api_key: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
        max_attempts: int = 2,
        base_url: str = BASE_URL,
    ):
        # Optional: the public tier works without a key, with tighter rate limits.
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        super().__init__(client or httpx.AsyncClient(timeout=timeout), max_attempts)

    @property
    def name(self) -> PriceProviderSource:
        return PriceProviderSource.COINGECKO

    async def get_quotes(self, coin: Coin, currencies: Sequence[Currency]) -> list[Quote]:
        requested = unique_currencies(currencies)
        coin_id = self.COIN_IDS.get(coin)
        if coin_id is None:
            raise InvalidInputError(f"{coin.value} is not supported by {self.provider_id}")

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key

        data = await self._request(
            "GET",
            f"{self.base_url}/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": ",".join(c.value.lower() for c in requested),
                "include_last_updated_at": "true",
            },
            headers=headers,
        )
        coin_data = self._read_coin_data(data, coin, coin_id)

        prices = {}
        for key, value in coin_data.items():
            if key == self.TIMESTAMP_KEY:
                continue
            currency = lookup_currency(key)
            if currency is None:
                raise MalformedResponse(self.provider_id, f"Unrecognized currency code '{key}' in response")
            prices[currency] = value

        timestamp = self._read_timestamp(coin_data.get(self.TIMESTAMP_KEY))
        quotes = []
        for currency in requested:
            if prices.get(currency) is None:
                raise MalformedResponse(
                    self.provider_id, f"Price not found for {coin.value} in {currency.value}"
                )
            try:
                price = to_decimal(prices[currency])
            except ValueError as e:
                raise MalformedResponse(self.provider_id, f"Invalid {currency.value} price: {e}") from e
            if price == 0:
                raise MalformedResponse(self.provider_id, f"Zero {currency.value} price reported")
            quotes.append(
                Quote(coin=coin, currency=currency, price=price, provider=self.name, timestamp=timestamp)
            )
        return quotes

    def _read_coin_data(self, data, coin: Coin, coin_id: str) -> dict:
        if not isinstance(data, dict):
            raise MalformedResponse(self.provider_id, "Response body is not an object")

        # Some error responses come back as 200 with a status object instead of data
        status = data.get("status")
        if isinstance(status, dict) and status.get("error_code"):
            error_code = status["error_code"]
            kind = ProviderErrorKind.RATE_LIMITED if error_code == 429 else None
            raise UpstreamRejected(
                self.provider_id,
                f"CoinGecko error {error_code}: {status.get('error_message', 'Unknown error')}",
                kind,
            )

        coin_data = data.get(coin_id)
        if not isinstance(coin_data, dict):
            raise MalformedResponse(self.provider_id, f"No data found for {coin.value}")
        return coin_data

    @staticmethod
    def _read_timestamp(value) -> datetime:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=UTC)
        return datetime.now(UTC)
