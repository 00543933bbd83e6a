import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.provider import (
	AggregateFailure,
	ConfigurationError,
	InvalidInputError,
	ProviderError,
	UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidInputError)
	async def invalid_input_handler(request: Request, exc: InvalidInputError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(AggregateFailure)
	async def aggregate_failure_handler(request: Request, exc: AggregateFailure):
		logger.error(f'Aggregate failure: {exc}')
		return JSONResponse(
			status_code=502,
			content={
				'detail': str(exc),
				'kind': 'aggregate_failure',
				'errors': [error.to_dict() for error in exc.errors],
			},
		)

	@app.exception_handler(ProviderError)
	async def provider_error_handler(request: Request, exc: ProviderError):
		logger.error(f'Provider error: {exc}')
		# Unreachable or silent upstream is a gateway timeout; anything it said back is a bad gateway
		status_code = 504 if isinstance(exc, UpstreamUnavailable) else 502
		return JSONResponse(
			status_code=status_code,
			content={'detail': str(exc), 'kind': exc.kind.value},
		)

	@app.exception_handler(ConfigurationError)
	async def configuration_error_handler(request: Request, exc: ConfigurationError):
		logger.error(f'Configuration error: {exc}')
		return JSONResponse(status_code=503, content={'detail': 'Service is misconfigured'})
