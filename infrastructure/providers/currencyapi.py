from decimal import Decimal

import httpx

from domain.exceptions.currency import SourceFetchError

from .base import BaseRateSource, normalize_rates


class CurrencyAPIProvider(BaseRateSource):
    def __init__(self, api_key: str, base_url: str = "https://api.currencyapi.com/v3",
                 client: httpx.AsyncClient | None = None, timeout: float = 10):
        super().__init__(base_url=base_url, client=client, timeout=timeout, headers={"apikey": api_key})
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "currencyapi"

    def _check_error(self, data: dict) -> None:
        if "error" in data:
            error = data["error"]
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            raise SourceFetchError(self.name, f"CurrencyAPI error: {message}")

    async def fetch_rates(self, base: str) -> dict[str, Decimal]:
        data = await self._request("latest", {"base_currency": base})

        entries = data.get("data")
        if not isinstance(entries, dict):
            raise SourceFetchError(self.name, "Malformed payload: missing 'data' object")

        # {"EUR": {"code": "EUR", "value": 0.92}, ...}
        raw_rates = {}
        for code, info in entries.items():
            if not isinstance(info, dict) or "value" not in info:
                raise SourceFetchError(self.name, f"Malformed payload: no value for {code}")
            raw_rates[info.get("code", code)] = info["value"]

        return normalize_rates(self.name, raw_rates, base)
