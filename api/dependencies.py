import asyncio
import logging

from application.services import (
	ConversionEngine,
	CountryCurrencyResolver,
	RefreshCoordinator,
	ServiceFactory,
)
from config.settings import get_settings
from workers.rate_refresher import RateRefreshWorker

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	factory: ServiceFactory | None = None
	worker: RateRefreshWorker | None = None
	worker_task: asyncio.Task | None = None


deps = AppDependencies()


def init_dependencies() -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = get_settings()

	deps.factory = ServiceFactory(settings)
	deps.factory.create_conversion_engine()
	deps.worker = RateRefreshWorker(deps.factory.coordinator, settings.REFRESH_INTERVAL_SECONDS)
	logger.info('Dependencies initialized')


async def bootstrap() -> None:
	"""Load initial rates and start the scheduled refresh. Called after init_dependencies()."""
	logger.info('Bootstrapping application...')

	if deps.factory is None or deps.factory.coordinator is None or deps.worker is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')

	await deps.factory.coordinator.initialize()

	if get_settings().REFRESH_ON_SCHEDULE:
		# First scheduled run happens one interval after the warm-up above
		deps.worker_task = asyncio.create_task(_delayed_worker(deps.worker))

	logger.info('Bootstrap complete')


async def _delayed_worker(worker: RateRefreshWorker) -> None:
	await asyncio.sleep(worker.update_interval)
	await worker.run()


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.worker is not None:
		deps.worker.stop()
	if deps.worker_task is not None:
		deps.worker_task.cancel()
		try:
			await deps.worker_task
		except asyncio.CancelledError:
			pass
	if deps.factory is not None:
		await deps.factory.cleanup()

	logger.info('Cleanup complete')


def get_service_factory() -> ServiceFactory:
	if deps.factory is None:
		raise RuntimeError('Services not initialized')
	return deps.factory


def get_coordinator() -> RefreshCoordinator:
	factory = get_service_factory()
	if factory.coordinator is None:
		raise RuntimeError('Refresh coordinator not initialized')
	return factory.coordinator


def get_conversion_engine() -> ConversionEngine:
	factory = get_service_factory()
	if factory.conversion_engine is None:
		raise RuntimeError('Conversion engine not initialized')
	return factory.conversion_engine


def get_country_resolver() -> CountryCurrencyResolver:
	return get_service_factory().country_resolver
