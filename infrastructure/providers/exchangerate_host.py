from decimal import Decimal

import httpx

from domain.exceptions.currency import SourceFetchError

from .base import BaseRateSource, normalize_rates


class ExchangeRateHostProvider(BaseRateSource):
    """Primary provider: exchangerate.host `latest` endpoint."""

    def __init__(self, base_url: str = "https://api.exchangerate.host", access_key: str = "",
                 client: httpx.AsyncClient | None = None, timeout: float = 10):
        super().__init__(base_url=base_url, client=client, timeout=timeout)
        self.access_key = access_key

    @property
    def name(self) -> str:
        return "exchangerate_host"

    def _check_error(self, data: dict) -> None:
        if data.get("success") is False:
            error = data.get("error") or {}
            info = error.get("info", "Unknown error") if isinstance(error, dict) else str(error)
            raise SourceFetchError(self.name, f"API error: {info}")

    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        params = {"base": base}
        if self.access_key:
            params["access_key"] = self.access_key

        data = await self._request("latest", params)
        self._check_base(data.get("base"), base)
        return normalize_rates(self.name, data.get("rates"), base)
