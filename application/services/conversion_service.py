import logging
from decimal import ROUND_HALF_UP, Decimal, DecimalException, localcontext

from application.services.missing_rate_monitor import MissingRateMonitor
from application.services.refresh_coordinator import RefreshCoordinator
from domain.models.rates import ConversionResult, RateSnapshot

logger = logging.getLogger(__name__)

Amount = Decimal | float | int

CENTS = Decimal('0.01')


def apply_rate(amount: Amount, rate: Decimal) -> Decimal:
	"""Multiply and round half-up to two decimals."""
	value = Decimal(str(amount))
	with localcontext() as ctx:
		# exact product, then room for the integer digits plus cents
		ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + len(rate.as_tuple().digits))
		converted = value * rate
		ctx.prec = max(ctx.prec, converted.adjusted() + 3)
		return converted.quantize(CENTS, rounding=ROUND_HALF_UP)


class ConversionEngine:
	"""
	Converts amounts stored in the base currency into a target currency.

	Never raises for a numeric amount: when no usable rate exists the amount is
	returned unchanged.
	"""

	def __init__(self, coordinator: RefreshCoordinator, missing_rate_monitor: MissingRateMonitor | None = None):
		self.coordinator = coordinator
		self.missing_rate_monitor = missing_rate_monitor or MissingRateMonitor()

	@property
	def base_currency(self) -> str:
		return self.coordinator.base_currency

	async def convert(self, amount: Amount, target_currency: str | None) -> Amount:
		result = await self.quote(amount, target_currency)
		return result.converted_amount

	async def quote(self, amount: Amount, target_currency: str | None) -> ConversionResult:
		target = (target_currency or self.base_currency).strip().upper()

		if target == self.base_currency:
			return ConversionResult(
				original_amount=amount,
				converted_amount=amount,
				base_currency=self.base_currency,
				target_currency=target,
				rate=Decimal('1'),
				source=None,
				fetched_at=None,
			)

		try:
			snapshot = await self.coordinator.get_snapshot()
		except Exception as e:
			logger.error(f'Could not obtain exchange rates, converting {target} as identity: {e}', exc_info=True)
			self.missing_rate_monitor.record(target)
			return self._identity(amount, target, warnings=['Exchange rates unavailable'])

		return self.convert_with(snapshot, amount, target)

	def convert_with(self, snapshot: RateSnapshot, amount: Amount, target: str) -> ConversionResult:
		rate = snapshot.rate_for(target)
		if rate is None:
			self.missing_rate_monitor.record(target, snapshot.source)
			return self._identity(
				amount, target, snapshot=snapshot, warnings=[f'No exchange rate available for {target}']
			)

		try:
			converted = apply_rate(amount, rate)
		except DecimalException as e:
			logger.warning(f'Cannot convert amount {amount!r} to {target}, returning it unchanged: {e!r}')
			return self._identity(
				amount, target, snapshot=snapshot, warnings=[f'Amount cannot be converted to {target}']
			)

		return ConversionResult(
			original_amount=amount,
			converted_amount=converted,
			base_currency=self.base_currency,
			target_currency=target,
			rate=rate,
			source=snapshot.source,
			fetched_at=snapshot.fetched_at,
		)

	def _identity(self, amount: Amount, target: str,
				  snapshot: RateSnapshot | None = None, warnings: list[str] | None = None) -> ConversionResult:
		return ConversionResult(
			original_amount=amount,
			converted_amount=amount,
			base_currency=self.base_currency,
			target_currency=target,
			rate=None,
			source=snapshot.source if snapshot else None,
			fetched_at=snapshot.fetched_at if snapshot else None,
			is_identity=True,
			warnings=warnings or [],
		)
