import asyncio
import logging
from collections.abc import Sequence

from domain.exceptions.provider import (
    ConfigurationError,
    InvalidInputError,
    ProviderErrorKind,
    UpstreamUnavailable,
)
from domain.models.gas import GasEstimate
from infrastructure.providers.base import GasOracle

logger = logging.getLogger(__name__)


class GasService:
    """Routes a gas price request to exactly one registered oracle, chosen by name."""

    def __init__(self, oracles: Sequence[GasOracle], default_provider: str = "etherscan", timeout: float = 5.0):
        self._oracles = {oracle.name.value: oracle for oracle in oracles}
        if not self._oracles:
            raise ConfigurationError("At least one gas provider must be registered")

        self.default_provider = default_provider.strip().lower()
        if self.default_provider not in self._oracles:
            raise ConfigurationError(
                f"Default gas provider '{default_provider}' is not registered. "
                f"Available: {self.provider_names}"
            )
        self.timeout = timeout

    @property
    def provider_names(self) -> list[str]:
        return list(self._oracles)

    async def get_gas_price(self, provider_name: str | None = None) -> GasEstimate:
        name = (provider_name or self.default_provider).strip().lower()
        oracle = self._oracles.get(name)
        if oracle is None:
            raise InvalidInputError(
                f"Unknown gas provider '{provider_name}'. Available: {', '.join(self.provider_names)}"
            )

        try:
            estimate = await asyncio.wait_for(oracle.get_gas_price(), timeout=self.timeout)
        except TimeoutError as e:
            logger.warning(f"Gas provider {name} timed out after {self.timeout}s")
            raise UpstreamUnavailable(
                name, f"No response within {self.timeout}s", ProviderErrorKind.TIMEOUT
            ) from e

        logger.info(f"Gas price from {name}: {estimate.low}/{estimate.average}/{estimate.high} gwei")
        return estimate
