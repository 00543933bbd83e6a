from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_gas_service
from api.schemas import ErrorResponse, GasPriceResponse
from application.services import GasService

router = APIRouter(prefix='/api/v1/gas', tags=['gas'])


@router.get(
	'/prices',
	response_model=GasPriceResponse,
	status_code=status.HTTP_200_OK,
	summary='Get current gas prices in gwei',
	responses={
		400: {'model': ErrorResponse},
		502: {'model': ErrorResponse},
		504: {'model': ErrorResponse},
	},
)
async def get_gas_prices(
	service: Annotated[GasService, Depends(get_gas_service)],
	provider: Annotated[
		str | None,
		Query(description='Gas oracle to use; the configured default when omitted'),
	] = None,
) -> GasPriceResponse:
	estimate = await service.get_gas_price(provider)
	return GasPriceResponse.from_domain(estimate)
