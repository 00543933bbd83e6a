"""
Provider registry: builds the configured price providers and gas oracles.

Registration order comes from settings (PRICE_PROVIDERS / GAS_PROVIDERS) and is
the order aggregated results are reported in. Every misconfiguration is raised
here, at startup, as a ConfigurationError rather than surfacing on the first
request.
"""

import logging
from collections.abc import Callable

from config.settings import Settings
from domain.exceptions.provider import ConfigurationError
from infrastructure.providers.base import GasOracle, PriceProvider
from infrastructure.providers.coingecko import CoinGeckoProvider
from infrastructure.providers.coinmarketcap import CoinMarketCapProvider
from infrastructure.providers.etherscan import EtherscanGasOracle
from infrastructure.providers.node_rpc import NodeRPCGasOracle

logger = logging.getLogger(__name__)


def _coinmarketcap(settings: Settings) -> PriceProvider:
    return CoinMarketCapProvider(
        settings.COINMARKETCAP_API_KEY,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        max_attempts=settings.PROVIDER_MAX_ATTEMPTS,
    )


def _coingecko(settings: Settings) -> PriceProvider:
    return CoinGeckoProvider(
        settings.COINGECKO_API_KEY,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        max_attempts=settings.PROVIDER_MAX_ATTEMPTS,
    )


def _etherscan(settings: Settings) -> GasOracle:
    return EtherscanGasOracle(
        settings.ETHERSCAN_API_KEY,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        max_attempts=settings.PROVIDER_MAX_ATTEMPTS,
    )


def _node_rpc(settings: Settings) -> GasOracle:
    return NodeRPCGasOracle(
        settings.ETHEREUM_RPC_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        max_attempts=settings.PROVIDER_MAX_ATTEMPTS,
        max_block_age=settings.RPC_MAX_BLOCK_AGE_SECONDS,
    )


PRICE_PROVIDER_FACTORIES: dict[str, Callable[[Settings], PriceProvider]] = {
    'coinmarketcap': _coinmarketcap,
    'coingecko': _coingecko,
}

GAS_ORACLE_FACTORIES: dict[str, Callable[[Settings], GasOracle]] = {
    'etherscan': _etherscan,
    'alloy': _node_rpc,
}


class ProviderRegistry:
    def __init__(self, price_providers: list[PriceProvider], gas_oracles: list[GasOracle]):
        self.price_providers = list(price_providers)
        self.gas_oracles = list(gas_oracles)

    @classmethod
    async def from_settings(cls, settings: Settings) -> 'ProviderRegistry':
        """Build every configured provider; on a ConfigurationError, close the ones already built."""
        price_names = settings.price_provider_names
        if not price_names:
            raise ConfigurationError('PRICE_PROVIDERS must name at least one price provider')

        registry = cls([], [])
        try:
            for name in price_names:
                registry.price_providers.append(_build(name, PRICE_PROVIDER_FACTORIES, settings, 'price provider'))
            for name in settings.gas_provider_names:
                registry.gas_oracles.append(_build(name, GAS_ORACLE_FACTORIES, settings, 'gas provider'))

            default_gas = settings.DEFAULT_GAS_PROVIDER.strip().lower()
            if default_gas not in registry.gas_names:
                raise ConfigurationError(
                    f"DEFAULT_GAS_PROVIDER '{settings.DEFAULT_GAS_PROVIDER}' is not registered. "
                    f'Registered: {registry.gas_names}'
                )
        except ConfigurationError:
            await registry.close()
            raise

        logger.info(f'Registered price providers: {registry.price_names}, gas providers: {registry.gas_names}')
        return registry

    @property
    def price_names(self) -> list[str]:
        return [provider.name.value for provider in self.price_providers]

    @property
    def gas_names(self) -> list[str]:
        return [oracle.name.value for oracle in self.gas_oracles]

    async def close(self) -> None:
        for provider in [*self.price_providers, *self.gas_oracles]:
            await provider.close()


def _build(name: str, factories: dict, settings: Settings, label: str):
    factory = factories.get(name)
    if factory is None:
        raise ConfigurationError(f"Unknown {label} '{name}'. Available: {list(factories)}")
    return factory(settings)
