from collections.abc import Mapping

from domain.models.countries import COUNTRY_TO_CURRENCY
from domain.models.rates import DEFAULT_BASE_CURRENCY


class CountryCurrencyResolver:
    """Maps a country code to the currency prices are shown in. Unknown countries get the base currency."""

    def __init__(self, base_currency: str = DEFAULT_BASE_CURRENCY,
                 table: Mapping[str, str] = COUNTRY_TO_CURRENCY):
        self.base_currency = base_currency
        self._table = table

    def resolve(self, country_code: str | None) -> str:
        if not country_code:
            return self.base_currency
        return self._table.get(country_code.strip().upper(), self.base_currency)

    def supported_currencies(self) -> list[str]:
        return sorted(set(self._table.values()))

    def supported_countries(self) -> list[str]:
        return list(self._table.keys())

    def country_currency_map(self) -> dict[str, str]:
        return dict(self._table)
