from .responses import (
	ErrorResponse,
	GasPriceDetail,
	GasPriceResponse,
	HealthResponse,
	ProviderErrorDetail,
	QuotePerAmountResponse,
	QuoteResponse,
	ServiceInfoResponse,
)

__all__ = [
	'ErrorResponse',
	'GasPriceDetail',
	'GasPriceResponse',
	'HealthResponse',
	'ProviderErrorDetail',
	'QuotePerAmountResponse',
	'QuoteResponse',
	'ServiceInfoResponse',
]
