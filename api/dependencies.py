import logging

from application.services import GasService, PriceAggregator
from config.settings import Settings, get_settings
from infrastructure.providers import ProviderRegistry

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	registry: ProviderRegistry | None = None
	price_service: PriceAggregator | None = None
	gas_service: GasService | None = None


deps = AppDependencies()


async def init_dependencies(settings: Settings | None = None) -> None:
	"""Build providers and services from settings. Called at app startup; raises ConfigurationError."""
	logger.info('Initializing dependencies...')
	settings = settings or get_settings()

	deps.registry = await ProviderRegistry.from_settings(settings)
	deps.price_service = PriceAggregator(
		deps.registry.price_providers,
		timeout=settings.PROVIDER_TIMEOUT_SECONDS,
	)
	deps.gas_service = GasService(
		deps.registry.gas_oracles,
		default_provider=settings.DEFAULT_GAS_PROVIDER,
		timeout=settings.PROVIDER_TIMEOUT_SECONDS,
	)
	logger.info('Dependencies initialized')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.registry:
		await deps.registry.close()
	deps.registry = None
	deps.price_service = None
	deps.gas_service = None

	logger.info('Cleanup complete')


def get_registry() -> ProviderRegistry:
	if deps.registry is None:
		raise RuntimeError('Providers not initialized')
	return deps.registry


def get_price_service() -> PriceAggregator:
	if deps.price_service is None:
		raise RuntimeError('Price service not initialized')
	return deps.price_service


def get_gas_service() -> GasService:
	if deps.gas_service is None:
		raise RuntimeError('Gas service not initialized')
	return deps.gas_service
