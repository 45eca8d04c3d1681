from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_conversion_engine, get_coordinator, get_country_resolver
from api.schemas import (
	ConversionResponse,
	CountryCurrencyMapResponse,
	CountryCurrencyResponse,
	RatesSnapshotResponse,
	RefreshResponse,
	SupportedCurrenciesResponse,
)
from application.services import ConversionEngine, CountryCurrencyResolver, RefreshCoordinator

router = APIRouter(prefix='/api', tags=['currency'])

CURRENCY_CODE = r'^[A-Za-z]{3}$'
COUNTRY_CODE = r'^[A-Za-z]{2}$'


@router.get(
	'/convert/{amount}',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Convert an amount from the base currency',
)
async def convert_amount(
	amount: Annotated[Decimal, Path(ge=0)],
	engine: Annotated[ConversionEngine, Depends(get_conversion_engine)],
	resolver: Annotated[CountryCurrencyResolver, Depends(get_country_resolver)],
	currency: Annotated[str | None, Query(pattern=CURRENCY_CODE, description='Target currency code')] = None,
	country: Annotated[str | None, Query(pattern=COUNTRY_CODE, description='Country code used when no currency is given')] = None,
) -> ConversionResponse:
	if currency:
		target = currency.upper()
	elif country:
		target = resolver.resolve(country)
	else:
		target = engine.base_currency

	result = await engine.quote(amount, target)
	return ConversionResponse(
		base_currency=result.base_currency,
		target_currency=result.target_currency,
		original_amount=result.original_amount,
		converted_amount=result.converted_amount,
		exchange_rate=result.rate,
		is_identity=result.is_identity,
		source=result.source,
		timestamp=result.fetched_at,
		warnings=result.warnings,
	)


@router.get(
	'/rates',
	response_model=RatesSnapshotResponse,
	status_code=status.HTTP_200_OK,
	summary='Current exchange rate snapshot',
)
async def get_rates(
	coordinator: Annotated[RefreshCoordinator, Depends(get_coordinator)],
) -> RatesSnapshotResponse:
	snapshot = await coordinator.get_snapshot()
	return RatesSnapshotResponse(
		base_currency=snapshot.base_currency,
		rates=dict(snapshot.rates),
		source=snapshot.source,
		fetched_at=snapshot.fetched_at,
		age_seconds=int(snapshot.age(datetime.now(UTC)).total_seconds()),
		state=coordinator.state.value,
		is_synthetic=snapshot.is_synthetic,
	)


@router.post(
	'/rates/refresh',
	response_model=RefreshResponse,
	status_code=status.HTTP_200_OK,
	summary='Force an exchange rate refresh',
)
async def refresh_rates(
	coordinator: Annotated[RefreshCoordinator, Depends(get_coordinator)],
) -> RefreshResponse:
	outcome = await coordinator.force_refresh()
	return RefreshResponse(
		succeeded=outcome.succeeded,
		source=outcome.snapshot.source,
		fetched_at=outcome.snapshot.fetched_at,
		rates_count=len(outcome.snapshot.rates),
		error=str(outcome.error) if outcome.error else None,
	)


@router.get(
	'/countries/{country_code}/currency',
	response_model=CountryCurrencyResponse,
	status_code=status.HTTP_200_OK,
	summary='Currency used for a country',
)
async def get_country_currency(
	country_code: Annotated[str, Path(pattern=COUNTRY_CODE, description='ISO 3166-1 alpha-2 country code')],
	resolver: Annotated[CountryCurrencyResolver, Depends(get_country_resolver)],
) -> CountryCurrencyResponse:
	country_code = country_code.upper()
	return CountryCurrencyResponse(country_code=country_code, currency=resolver.resolve(country_code))


@router.get(
	'/currencies',
	response_model=SupportedCurrenciesResponse,
	status_code=status.HTTP_200_OK,
	summary='List supported currencies',
)
async def get_supported_currencies(
	resolver: Annotated[CountryCurrencyResolver, Depends(get_country_resolver)],
) -> SupportedCurrenciesResponse:
	return SupportedCurrenciesResponse(currencies=resolver.supported_currencies())


@router.get(
	'/countries',
	response_model=CountryCurrencyMapResponse,
	status_code=status.HTTP_200_OK,
	summary='Country to currency mapping',
)
async def get_country_currency_map(
	resolver: Annotated[CountryCurrencyResolver, Depends(get_country_resolver)],
) -> CountryCurrencyMapResponse:
	return CountryCurrencyMapResponse(countries=resolver.country_currency_map())
