from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from domain.models.crypto import Quote
from domain.models.gas import GasEstimate


class QuotePerAmountResponse(BaseModel):
	amount: Decimal = Field(..., description='Number of coins priced')
	total_price: Decimal = Field(..., description='Price of `amount` coins')


class QuoteResponse(BaseModel):
	coin: str = Field(..., description='Coin ticker')
	currency: str = Field(..., description='Fiat currency code')
	currency_symbol: str = Field(..., description='Display symbol of the currency')
	price: Decimal = Field(..., description='Price of one coin')
	provider: str = Field(..., description='Provider that reported the price')
	timestamp: datetime = Field(..., description='When the provider last updated the price')
	quote_per_amount: QuotePerAmountResponse

	model_config = ConfigDict(
		json_schema_extra={
			'example': {
				'coin': 'ETH',
				'currency': 'USD',
				'currency_symbol': '$',
				'price': '4164.82',
				'provider': 'coinmarketcap',
				'timestamp': '2025-09-27T10:30:00Z',
				'quote_per_amount': {'amount': '2', 'total_price': '8329.64'},
			}
		}
	)

	@classmethod
	def from_domain(cls, quote: Quote) -> 'QuoteResponse':
		return cls(
			coin=quote.coin.value,
			currency=quote.currency.value,
			currency_symbol=quote.currency.symbol,
			price=quote.price,
			provider=quote.provider.value,
			timestamp=quote.timestamp,
			quote_per_amount=QuotePerAmountResponse(
				amount=quote.quote_per_amount.amount,
				total_price=quote.quote_per_amount.total_price,
			),
		)


class GasPriceDetail(BaseModel):
	low: Decimal = Field(..., description='Low priority gas price in gwei')
	average: Decimal = Field(..., description='Average priority gas price in gwei')
	high: Decimal = Field(..., description='High priority gas price in gwei')
	unit: str = Field(default='gwei', description='Unit of all three prices')
	timestamp: datetime = Field(..., description='When the estimate was produced')


class GasPriceResponse(BaseModel):
	gas_price: GasPriceDetail
	provider: str = Field(..., description='Oracle that produced the estimate')

	model_config = ConfigDict(
		json_schema_extra={
			'example': {
				'gas_price': {
					'low': '13',
					'average': '14',
					'high': '17',
					'unit': 'gwei',
					'timestamp': '2025-09-27T10:30:00Z',
				},
				'provider': 'alloy',
			}
		}
	)

	@classmethod
	def from_domain(cls, estimate: GasEstimate) -> 'GasPriceResponse':
		return cls(
			gas_price=GasPriceDetail(
				low=estimate.low,
				average=estimate.average,
				high=estimate.high,
				timestamp=estimate.timestamp,
			),
			provider=estimate.provider.value,
		)


class HealthResponse(BaseModel):
	status: str = Field(..., description='Always "ok" while the process serves requests')
	message: str


class ServiceInfoResponse(BaseModel):
	name: str
	version: str
	endpoints: dict[str, str] = Field(description='Route templates by purpose')
	price_providers: list[str] = Field(description='Registered price providers, in fan-out order')
	gas_providers: list[str] = Field(description='Registered gas oracles')
	default_gas_provider: str
	docs: str = '/docs'


class ProviderErrorDetail(BaseModel):
	provider: str
	kind: str
	message: str


class ErrorResponse(BaseModel):
	detail: str
	kind: str | None = None
	errors: list[ProviderErrorDetail] | None = None
