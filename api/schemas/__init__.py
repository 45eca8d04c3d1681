from .responses import (
	ConversionResponse,
	CountryCurrencyMapResponse,
	CountryCurrencyResponse,
	RatesSnapshotResponse,
	RefreshResponse,
	SupportedCurrenciesResponse,
)

__all__ = [
	'ConversionResponse',
	'CountryCurrencyMapResponse',
	'CountryCurrencyResponse',
	'RatesSnapshotResponse',
	'RefreshResponse',
	'SupportedCurrenciesResponse',
]
