import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime

from application.services import RefreshCoordinator, ServiceFactory
from config.logging_config import setup_logging
from config.settings import get_settings
from domain.models.rates import RefreshOutcome

logger = logging.getLogger(__name__)

SAMPLE_CURRENCIES = ["USD", "EGP", "AED", "SAR", "EUR", "GBP"]


class RateRefreshWorker:
    """
    Background worker that refreshes exchange rates on a fixed interval.

    It keeps the common read path on fresh rates; conversions still refresh
    lazily when this worker is not running.
    """

    def __init__(self, coordinator: RefreshCoordinator, update_interval: int = 3600):
        """
        Args:
            coordinator: Owner of the rate snapshot to refresh
            update_interval: Seconds between refreshes (default: one hour)
        """
        self.coordinator = coordinator
        self.update_interval = update_interval
        self.is_running = False
        self._stop_event = asyncio.Event()

    async def run_once(self) -> RefreshOutcome:
        """Force one refresh and log how it went."""
        cycle_start = datetime.now()
        outcome = await self.coordinator.force_refresh()
        cycle_duration = (datetime.now() - cycle_start).total_seconds()

        if outcome.succeeded:
            logger.info(
                f"Exchange rates updated from {outcome.snapshot.source} in {cycle_duration:.2f}s "
                f"({len(outcome.snapshot.rates)} currencies)"
            )
        else:
            logger.error(
                f"Failed to update exchange rates after {cycle_duration:.2f}s, "
                f"serving {outcome.snapshot.source} rates: {outcome.error}"
            )
        return outcome

    async def run(self):
        """
        Main worker loop. Runs until stopped or cancelled.
        """
        self.is_running = True
        self._stop_event.clear()
        logger.info(f"Rate refresh worker started, interval {self.update_interval}s")

        while self.is_running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Worker received cancellation signal")
                break
            except Exception as e:
                # A failed cycle must never take the host process down
                logger.error(f"Error in rate refresh cycle: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.update_interval)
            except TimeoutError:
                continue
            except asyncio.CancelledError:
                logger.info("Worker received cancellation signal")
                break

        self.is_running = False
        logger.info("Rate refresh worker stopped")

    def stop(self):
        """Gracefully stop the worker"""
        logger.info("Stopping rate refresh worker...")
        self.is_running = False
        self._stop_event.set()


def _print_summary(outcome: RefreshOutcome) -> None:
    snapshot = outcome.snapshot
    print("=" * 50)
    print(f"Refresh {'succeeded' if outcome.succeeded else 'FAILED'}: {snapshot.source}, "
          f"{len(snapshot.rates)} currencies, fetched at {snapshot.fetched_at.isoformat()}")
    for currency in SAMPLE_CURRENCIES:
        rate = snapshot.rate_for(currency)
        print(f"  {currency}: {rate if rate is not None else 'NOT AVAILABLE'}")
    if outcome.error:
        print(f"Error: {outcome.error}")
    print("=" * 50)


async def main(argv: list[str] | None = None) -> int:
    """Entry point for running the worker."""
    parser = argparse.ArgumentParser(description="Refresh cached exchange rates")
    parser.add_argument("--once", action="store_true", help="refresh once and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIRECTORY, settings.LOG_TO_FILE)

    service_factory = ServiceFactory(settings)
    service_factory.create_conversion_engine()
    worker = RateRefreshWorker(service_factory.coordinator, settings.REFRESH_INTERVAL_SECONDS)

    try:
        if args.once:
            outcome = await worker.run_once()
            _print_summary(outcome)
            return 0 if outcome.succeeded else 1

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, worker.stop)

        await worker.run()
        return 0
    finally:
        await service_factory.cleanup()
        logger.info("Cleanup completed")


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
