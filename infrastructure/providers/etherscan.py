import logging
from datetime import UTC, datetime

import httpx

from domain.exceptions.provider import (
    ConfigurationError,
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.gas import GasEstimate, GasOracleSource
from domain.normalization import clamp_monotonic, to_decimal
from infrastructure.providers.base import BaseAPIProvider, GasOracle

logger = logging.getLogger(__name__)


class EtherscanGasOracle(BaseAPIProvider, GasOracle):
    """Gas tracker oracle from the Etherscan V2 multichain API; values are already in gwei."""

    BASE_URL = "https://api.etherscan.io/v2/api"
    MAINNET_CHAIN_ID = 1

    FIELDS = ("SafeGasPrice", "ProposeGasPrice", "FastGasPrice")

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
        max_attempts: int = 2,
        chain_id: int = MAINNET_CHAIN_ID,
        base_url: str = BASE_URL,
    ):
        if not api_key:
            raise ConfigurationError("ETHERSCAN_API_KEY is required for the etherscan gas provider")
        self.api_key = api_key
        self.chain_id = chain_id
        self.base_url = base_url
        super().__init__(client or httpx.AsyncClient(timeout=timeout), max_attempts)

    @property
    def name(self) -> GasOracleSource:
        return GasOracleSource.ETHERSCAN

    async def get_gas_price(self) -> GasEstimate:
        data = await self._request(
            "GET",
            self.base_url,
            params={
                "chainid": self.chain_id,
                "module": "gastracker",
                "action": "gasoracle",
                "apikey": self.api_key,
            },
        )
        result = self._check_status(data)

        try:
            low, average, high = (to_decimal(result[field]) for field in self.FIELDS)
        except KeyError as e:
            raise MalformedResponse(self.provider_id, f"Missing field {e} in gas oracle result") from e
        except ValueError as e:
            raise MalformedResponse(self.provider_id, f"Invalid gas price: {e}") from e

        clamped = clamp_monotonic(low, average, high)
        if clamped != (low, average, high):
            logger.warning(
                f"Etherscan returned non-monotonic gas prices {low}/{average}/{high}, clamped to "
                f"{clamped[0]}/{clamped[1]}/{clamped[2]}"
            )
        low, average, high = clamped

        return GasEstimate(
            low=low,
            average=average,
            high=high,
            timestamp=datetime.now(UTC),
            provider=self.name,
        )

    def _check_status(self, data) -> dict:
        if not isinstance(data, dict):
            raise MalformedResponse(self.provider_id, "Response body is not an object")

        if data.get("status") != "1":
            # On failure `result` carries the human-readable reason
            detail = data.get("result") or data.get("message") or "Unknown error"
            detail = str(detail)
            lowered = detail.lower()
            if "rate limit" in lowered:
                kind = ProviderErrorKind.RATE_LIMITED
            elif "api key" in lowered:
                kind = ProviderErrorKind.UNAUTHORIZED
            else:
                kind = ProviderErrorKind.UPSTREAM_REJECTED
            raise UpstreamRejected(self.provider_id, f"Etherscan error: {detail}", kind)

        result = data.get("result")
        if not isinstance(result, dict):
            raise MalformedResponse(self.provider_id, "Gas oracle result is not an object")
        return result
