from types import MappingProxyType

# ISO 3166-1 alpha-2 country code -> ISO 4217 currency code
COUNTRY_TO_CURRENCY = MappingProxyType({
    # United States
    "US": "USD",
    # Middle East
    "EG": "EGP",
    "AE": "AED",
    "SA": "SAR",
    "KW": "KWD",
    "QA": "QAR",
    "BH": "BHD",
    "OM": "OMR",
    "JO": "JOD",
    "LB": "LBP",
    "IQ": "IQD",
    "YE": "YER",
    "SY": "SYP",
    "PS": "ILS",  # Palestine uses the Israeli shekel
    # Europe
    "GB": "GBP",
    "DE": "EUR",
    "FR": "EUR",
    "IT": "EUR",
    "ES": "EUR",
    "NL": "EUR",
    "BE": "EUR",
    "AT": "EUR",
    "CH": "CHF",
    "SE": "SEK",
    "NO": "NOK",
    "DK": "DKK",
    "PL": "PLN",
    "RU": "RUB",
    # Asia
    "CN": "CNY",
    "JP": "JPY",
    "IN": "INR",
    "KR": "KRW",
    "SG": "SGD",
    "MY": "MYR",
    "TH": "THB",
    "ID": "IDR",
    "PH": "PHP",
    "VN": "VND",
    "PK": "PKR",
    "BD": "BDT",
    "LK": "LKR",
    "NP": "NPR",
    # Africa
    "ZA": "ZAR",
    "NG": "NGN",
    "KE": "KES",
    "GH": "GHS",
    "MA": "MAD",
    "TN": "TND",
    "DZ": "DZD",
    "SD": "SDG",
    "ET": "ETB",
    # Americas
    "CA": "CAD",
    "MX": "MXN",
    "BR": "BRL",
    "AR": "ARS",
    "CL": "CLP",
    "CO": "COP",
    "PE": "PEN",
    # Oceania
    "AU": "AUD",
    "NZ": "NZD",
})
