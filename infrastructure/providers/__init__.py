from .base import GasOracle, PriceProvider
from .coingecko import CoinGeckoProvider
from .coinmarketcap import CoinMarketCapProvider
from .etherscan import EtherscanGasOracle
from .node_rpc import NodeRPCGasOracle
from .registry import ProviderRegistry

__all__ = [
    'PriceProvider',
    'GasOracle',
    'CoinMarketCapProvider',
    'CoinGeckoProvider',
    'EtherscanGasOracle',
    'NodeRPCGasOracle',
    'ProviderRegistry',
]
