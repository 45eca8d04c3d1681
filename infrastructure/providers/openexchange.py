from decimal import Decimal


import httpx


from domain.exceptions.currency import SourceFetchError

from .base import BaseRateSource, normalize_rates


class OpenExchangeProvider(BaseRateSource):
    """
    Open Exchange Rates. The free plan only serves USD as base; any other base
    comes back as USD and is rejected by the base check.
    """

    def __init__(self, app_id: str, base_url: str = "https://openexchangerates.org/api",
                 client: httpx.AsyncClient | None = None, timeout: float = 10):
        super().__init__(base_url=base_url, client=client, timeout=timeout)
        self.app_id = app_id

    @property
    def name(self) -> str:
        return "openexchange"

    def _check_error(self, data: dict) -> None:
        if data.get("error"):
            message = data.get("description", data.get("message", "Unknown error"))
            raise SourceFetchError(self.name, f"API error: {message}")

    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        data = await self._request("latest.json", {"app_id": self.app_id, "base": base})
        self._check_base(data.get("base"), base)
        return normalize_rates(self.name, data.get("rates"), base)
