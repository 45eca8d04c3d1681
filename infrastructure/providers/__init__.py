from .base import BaseRateSource, normalize_rates
from .currencyapi import CurrencyAPIProvider
from .exchangerate_host import ExchangeRateHostProvider
from .fixerio import FixerIOProvider
from .open_er_api import OpenERAPIProvider
from .openexchange import OpenExchangeProvider

__all__ = [
    'BaseRateSource',
    'normalize_rates',
    'CurrencyAPIProvider',
    'ExchangeRateHostProvider',
    'FixerIOProvider',
    'OpenERAPIProvider',
    'OpenExchangeProvider',
]
