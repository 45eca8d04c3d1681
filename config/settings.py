from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	# Application
	APP_NAME: str = 'Exchange Rate Engine'
	DEBUG: bool = False
	LOG_LEVEL: str = 'INFO'
	LOG_DIRECTORY: str = 'logs'
	LOG_TO_FILE: bool = False

	# Rates
	BASE_CURRENCY: str = 'USD'
	RATES_TTL_SECONDS: int = 3600
	RATE_SOURCES: str = 'exchangerate_host,open_er_api,openexchange,fixerio,currencyapi'
	SOURCE_TIMEOUT_SECONDS: float = 10.0
	SOURCE_RETRY_ATTEMPTS: int = 2

	EXCHANGERATE_HOST_URL: str = 'https://api.exchangerate.host'
	EXCHANGERATE_HOST_ACCESS_KEY: str = ''
	OPEN_ER_API_URL: str = 'https://open.er-api.com/v6'
	OPENEXCHANGE_APP_ID: str = ''
	FIXERIO_API_KEY: str = ''
	CURRENCYAPI_API_KEY: str = ''

	# Shared cache, empty means process-local only
	REDIS_URL: str = ''
	RATES_CACHE_KEY: str = 'exchange_rates_cache'

	# Scheduled refresh
	REFRESH_INTERVAL_SECONDS: int = 3600
	REFRESH_ON_SCHEDULE: bool = True

	MISSING_RATE_LOG_INTERVAL_SECONDS: int = 300

	# Circuit breaker
	CB_FAILURE_THRESHOLD: int = 3
	CB_RECOVERY_TIMEOUT: int = 300
	CB_SUCCESS_THRESHOLD: int = 1

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	@field_validator('BASE_CURRENCY')
	@classmethod
	def uppercase_currency(cls, v: str):
		return v.strip().upper()

	@property
	def rate_source_names(self) -> list[str]:
		return [name.strip().lower() for name in self.RATE_SOURCES.split(',') if name.strip()]


@lru_cache
def get_settings() -> Settings:
	return Settings()
