import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)


class MissingRateMonitor:
    """
    Counts conversions that fell back to identity because a rate was missing.

    Logging is throttled per currency: at most one warning every `log_interval`,
    carrying the number of occurrences suppressed since the previous one.
    """

    def __init__(self, log_interval: timedelta = timedelta(minutes=5),
                 clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        self.log_interval = log_interval
        self._clock = clock
        self._counts: dict[str, int] = {}
        self._suppressed: dict[str, int] = {}
        self._last_logged: dict[str, datetime] = {}

    def record(self, currency: str, source: str | None = None) -> None:
        self._counts[currency] = self._counts.get(currency, 0) + 1

        now = self._clock()
        last_logged = self._last_logged.get(currency)
        if last_logged is not None and now - last_logged < self.log_interval:
            self._suppressed[currency] = self._suppressed.get(currency, 0) + 1
            return

        suppressed = self._suppressed.pop(currency, 0)
        self._last_logged[currency] = now
        message = f"Rate not found for {currency} in rates from {source or 'unknown'}, using identity conversion"
        if suppressed:
            message += f" ({suppressed} similar events suppressed)"
        logger.warning(message)

    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def total(self) -> int:
        return sum(self._counts.values())
