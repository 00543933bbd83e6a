import logging
from contextlib import asynccontextmanager
from typing import Annotated

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from api.dependencies import cleanup_dependencies, get_registry, init_dependencies
from api.error_handlers import register_exception_handlers
from api.routes import gas, health, price
from api.schemas import ServiceInfoResponse
from config.settings import get_settings
from infrastructure.monitoring.logger import configure_logging
from infrastructure.providers import ProviderRegistry

logger = logging.getLogger(__name__)


settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
	configure_logging(settings.LOG_LEVEL, json_format=settings.LOG_FORMAT == 'json')
	logger.info(f'Starting {settings.APP_NAME}...')

	# ConfigurationError propagates so the server refuses to start
	await init_dependencies(settings)
	logger.info('Application ready')

	yield

	logger.info('Shutting down...')
	await cleanup_dependencies()


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, debug=settings.DEBUG, lifespan=lifespan)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
	logger.error(f'Unhandled exception: {exc}', exc_info=True)
	return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


@app.get('/', response_model=ServiceInfoResponse, tags=['health'], summary='Service information')
async def root(registry: Annotated[ProviderRegistry, Depends(get_registry)]) -> ServiceInfoResponse:
	return ServiceInfoResponse(
		name=settings.APP_NAME,
		version=settings.APP_VERSION,
		endpoints={
			'prices': '/api/v1/price/prices?amount={amount}&currency={currency}',
			'gas': '/api/v1/gas/prices?provider={provider}',
			'health': '/api/v1/health',
		},
		price_providers=registry.price_names,
		gas_providers=registry.gas_names,
		default_gas_provider=settings.DEFAULT_GAS_PROVIDER.strip().lower(),
	)


app.include_router(price.router)
app.include_router(gas.router)
app.include_router(health.router)
register_exception_handlers(app)


def run() -> None:
	uvicorn.run('api.main:app', host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
