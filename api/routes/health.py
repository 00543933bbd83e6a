from fastapi import APIRouter, status

from api.schemas import HealthResponse
from config.settings import get_settings

router = APIRouter(prefix='/api/v1', tags=['health'])


@router.get(
	'/health',
	response_model=HealthResponse,
	status_code=status.HTTP_200_OK,
	summary='Liveness check',
)
async def health_check() -> HealthResponse:
	return HealthResponse(status='ok', message=f'{get_settings().APP_NAME} is running')
