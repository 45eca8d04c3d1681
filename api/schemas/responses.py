from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ConversionResponse(BaseModel):
	base_currency: str = Field(..., description='Currency prices are stored in')
	target_currency: str = Field(..., description='Target currency code')
	original_amount: Decimal = Field(..., description='Original amount requested')
	converted_amount: Decimal = Field(..., description='Converted amount')
	exchange_rate: Decimal | None = Field(None, description='Rate used, absent when no rate was available')
	is_identity: bool = Field(False, description='Amount returned unchanged because no rate was available')
	source: str | None = Field(None, description='Provider of the rates')
	timestamp: datetime | None = Field(None, description='When the rates were fetched')
	warnings: list[str] = Field(default_factory=list)

	class ConfigDict:
		json_schema_extra = {
			'example': {
				'base_currency': 'USD',
				'target_currency': 'EGP',
				'original_amount': 100.00,
				'converted_amount': 3050.00,
				'exchange_rate': 30.5,
				'is_identity': False,
				'source': 'exchangerate_host',
				'timestamp': '2025-09-27T10:30:00Z',
			}
		}


class RatesSnapshotResponse(BaseModel):
	base_currency: str
	rates: dict[str, Decimal] = Field(..., description='Units of each currency per unit of base')
	source: str = Field(..., description='Provider of the rates')
	fetched_at: datetime
	age_seconds: int
	state: str = Field(..., description='EMPTY, FRESH, STALE or REFRESHING')
	is_synthetic: bool = False


class RefreshResponse(BaseModel):
	succeeded: bool
	source: str
	fetched_at: datetime
	rates_count: int
	error: str | None = None


class CountryCurrencyResponse(BaseModel):
	country_code: str
	currency: str


class SupportedCurrenciesResponse(BaseModel):
	currencies: list[str] = Field(description='List of currency codes')

	class ConfigDict:
		json_schema_extra = {'examples': [{'currencies': ['AED', 'EGP', 'EUR', 'USD']}]}


class CountryCurrencyMapResponse(BaseModel):
	countries: dict[str, str] = Field(description='Country code to currency code')
