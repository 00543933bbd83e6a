import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from domain.exceptions.provider import (
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
    UpstreamUnavailable,
)
from domain.models.crypto import Coin, PriceProviderSource, Quote
from domain.models.gas import GasEstimate, GasOracleSource

logger = logging.getLogger(__name__)


class PriceProvider(ABC):
    """A source of coin prices in fiat currencies."""

    @property
    @abstractmethod
    def name(self) -> PriceProviderSource:
        ...

    @abstractmethod
    async def get_quotes(self, coin: Coin, currencies: Sequence) -> list[Quote]:
        """
        Fetch one quote per requested currency, in request order, with a single upstream call.

        Raises InvalidInputError for an empty currency list and a ProviderError
        subclass for any upstream failure.
        """

    async def close(self) -> None:
        pass


class GasOracle(ABC):
    """A source of low/average/high gas prices, normalized to gwei."""

    @property
    @abstractmethod
    def name(self) -> GasOracleSource:
        ...

    @abstractmethod
    async def get_gas_price(self) -> GasEstimate:
        ...

    async def close(self) -> None:
        pass


def _is_transport_failure(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamUnavailable) and exc.kind is ProviderErrorKind.UPSTREAM_UNAVAILABLE


class BaseAPIProvider:
    """Common HTTP handling: typed failures for every way a request can go wrong."""

    def __init__(self, client: httpx.AsyncClient, max_attempts: int = 2):
        self._client = client
        self.max_attempts = max_attempts

    @property
    def provider_id(self) -> str:
        return self.name.value

    async def _request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body, retrying connection failures only."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
            retry=retry_if_exception(_is_transport_failure),
            reraise=True,
        ):
            with attempt:
                return await self._send(method, url, params=params, headers=headers, json=json)

    async def _send(self, method: str, url: str, params=None, headers=None, json=None) -> Any:
        try:
            if method == "POST":
                response = await self._client.post(url, json=json, headers=headers)
            else:
                response = await self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            raise self._rejected(e.response.status_code, e.response.text[:200]) from e
        except httpx.TimeoutException as e:
            logger.warning(f"{self.provider_id} timed out: {e.__class__.__name__}")
            raise UpstreamUnavailable(
                self.provider_id, f"Request timed out: {e.__class__.__name__}", ProviderErrorKind.TIMEOUT
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"{self.provider_id} request failed: {e.__class__.__name__}")
            raise UpstreamUnavailable(self.provider_id, f"Request failed: {e.__class__.__name__}") from e
        except ValueError as e:
            raise MalformedResponse(self.provider_id, f"Response is not valid JSON: {e}") from e

    def _rejected(self, status_code: int, body: str) -> UpstreamRejected:
        if status_code == 429:
            kind = ProviderErrorKind.RATE_LIMITED
        elif status_code in (401, 403):
            kind = ProviderErrorKind.UNAUTHORIZED
        else:
            kind = ProviderErrorKind.UPSTREAM_REJECTED
        logger.error(f"{self.provider_id} HTTP error {status_code}: {body}")
        return UpstreamRejected(
            self.provider_id, f"HTTP error {status_code}: {body}", kind, status_code=status_code
        )

    async def close(self) -> None:
        await self._client.aclose()
