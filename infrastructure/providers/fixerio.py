from decimal import Decimal

import httpx

from domain.exceptions.currency import SourceFetchError

from .base import BaseRateSource, normalize_rates


class FixerIOProvider(BaseRateSource):
	def __init__(self, api_key: str, base_url: str = 'http://data.fixer.io/api',
				 client: httpx.AsyncClient | None = None, timeout: float = 10):
		super().__init__(base_url=base_url, client=client, timeout=timeout)
		self.api_key = api_key

	@property
	def name(self) -> str:
		return 'fixerio'

	def _check_error(self, data: dict) -> None:
		if not data.get('success', False):
			info = data.get('error', {}).get('info', 'Unknown error')
			raise SourceFetchError(self.name, f'Fixer.io API error: {info}')

	async def fetch_rates(self, base: str) -> dict[str, Decimal]:
		data = await self._request('latest', {'access_key': self.api_key, 'base': base})
		self._check_base(data.get('base'), base)
		return normalize_rates(self.name, data.get('rates'), base)
