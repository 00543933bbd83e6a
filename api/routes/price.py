from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_price_service
from api.schemas import ErrorResponse, QuoteResponse
from application.services import PriceAggregator
from domain.models.crypto import Coin
from domain.normalization import parse_currency

router = APIRouter(prefix='/api/v1/price', tags=['price'])


@router.get(
	'/prices',
	response_model=list[QuoteResponse],
	status_code=status.HTTP_200_OK,
	summary='Get ETH price from every provider',
	responses={400: {'model': ErrorResponse}, 502: {'model': ErrorResponse}},
)
async def get_crypto_prices(
	service: Annotated[PriceAggregator, Depends(get_price_service)],
	amount: Annotated[Decimal, Query(gt=0, description='Number of ETH to price')] = Decimal(1),
	currency: Annotated[
		str,
		Query(
			description='Fiat currency code, case-insensitive',
		),
	] = 'USD',
) -> list[QuoteResponse]:
	quotes = await service.get_quotes_for_amount(Coin.ETH, parse_currency(currency), amount)
	return [QuoteResponse.from_domain(quote) for quote in quotes]
