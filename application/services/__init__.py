from .gas_service import GasService
from .price_service import PriceAggregation, PriceAggregator

__all__ = ['GasService', 'PriceAggregation', 'PriceAggregator']
