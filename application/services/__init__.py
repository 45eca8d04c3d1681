from .circuit_breaker import CircuitBreaker, CircuitBreakerState
from .conversion_service import ConversionEngine, apply_rate
from .country_resolver import CountryCurrencyResolver
from .missing_rate_monitor import MissingRateMonitor
from .refresh_coordinator import RefreshCoordinator
from .service_factory import ServiceFactory
from .source_chain import SourceChain

__all__ = [
	'CircuitBreaker',
	'CircuitBreakerState',
	'ConversionEngine',
	'CountryCurrencyResolver',
	'MissingRateMonitor',
	'RefreshCoordinator',
	'ServiceFactory',
	'SourceChain',
	'apply_rate',
]
