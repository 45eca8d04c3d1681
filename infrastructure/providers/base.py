import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

import httpx

from domain.exceptions.currency import SourceFetchError
from domain.models.rates import to_rate

logger = logging.getLogger(__name__)


def normalize_rates(source: str, raw_rates: Any, base: str) -> dict[str, Decimal]:
    """
    Validate a provider's rate table and bring it into the internal shape.

    A payload with no rate object or with any non-numeric value is rejected as a
    whole. Non-positive rates are dropped. The base entry is always 1.
    """
    if not isinstance(raw_rates, dict) or not raw_rates:
        raise SourceFetchError(source, "Malformed payload: missing 'rates' object")

    rates: dict[str, Decimal] = {}
    for code, raw in raw_rates.items():
        rate = to_rate(raw)
        if rate is None:
            raise SourceFetchError(source, f"Malformed payload: non-numeric rate for {code}: {raw!r}")
        if rate <= 0:
            logger.debug(f"{source} returned non-positive rate for {code}, dropping it")
            continue
        rates[str(code).upper()] = rate

    rates[base] = Decimal("1")
    return rates


class BaseRateSource(ABC):
    """A base class for upstream rate providers, handling common HTTP logic."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None,
                 timeout: float = 10, headers: dict[str, str] | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"accept": "application/json", **(headers or {})},
        )

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        """Full rate table relative to `base`, or SourceFetchError."""
        ...

    def _check_error(self, data: dict) -> None:
        """Raise SourceFetchError when the body reports a provider-level error."""

    def _check_base(self, reported: Any, base: str) -> None:
        if reported and str(reported).upper() != base:
            raise SourceFetchError(self.name, f"Requested base {base} but provider returned {reported}")

    async def _request(self, endpoint: str, params: dict | None = None) -> dict:
        url = f"{self.base_url}/{endpoint}" if endpoint else self.base_url
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise SourceFetchError(
                self.name, f"HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.TimeoutException as e:
            raise SourceFetchError(self.name, f"Timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise SourceFetchError(
                self.name, f"Request failed: {e.__class__.__name__}", transient=True
            ) from e
        except ValueError as e:
            raise SourceFetchError(self.name, f"Response parsing error: {str(e)}") from e

        if not isinstance(data, dict):
            raise SourceFetchError(self.name, "Malformed payload: expected a JSON object")

        self._check_error(data)
        return data

    async def close(self) -> None:
        """Cleanly close the HTTP client."""
        await self._client.aclose()
