from decimal import Decimal

import httpx

from domain.exceptions.currency import SourceFetchError

from .base import BaseRateSource, normalize_rates


class OpenERAPIProvider(BaseRateSource):
    """Keyless fallback: ExchangeRate-API open access endpoint."""

    def __init__(self, base_url: str = "https://open.er-api.com/v6",
                 client: httpx.AsyncClient | None = None, timeout: float = 10):
        super().__init__(base_url=base_url, client=client, timeout=timeout)

    @property
    def name(self) -> str:
        return "open_er_api"

    def _check_error(self, data: dict) -> None:
        if data.get("result") != "success":
            raise SourceFetchError(self.name, f"API error: {data.get('error-type', 'Unknown error')}")

    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        data = await self._request(f"latest/{base}")
        self._check_base(data.get("base_code"), base)
        return normalize_rates(self.name, data.get("rates"), base)
