"""
Currency - классификация валюты оффера (фиат или крипта)

Решение принимается один раз при выборе валюты (шаг 3) и дальше
передаётся как тип, а не вычисляется заново в каждом месте.
"""
from dataclasses import dataclass
from typing import Union


# ISO 4217 коды активных фиатных валют (без X-кодов: металлы, SDR, тестовые)
ISO_4217_CODES = frozenset({
    'AED', 'AFN', 'ALL', 'AMD', 'ANG', 'AOA', 'ARS', 'AUD', 'AWG', 'AZN',
    'BAM', 'BBD', 'BDT', 'BGN', 'BHD', 'BIF', 'BMD', 'BND', 'BOB', 'BRL',
    'BSD', 'BTN', 'BWP', 'BYN', 'BZD', 'CAD', 'CDF', 'CHF', 'CLP', 'CNY',
    'COP', 'CRC', 'CUP', 'CVE', 'CZK', 'DJF', 'DKK', 'DOP', 'DZD', 'EGP',
    'ERN', 'ETB', 'EUR', 'FJD', 'FKP', 'GBP', 'GEL', 'GHS', 'GIP', 'GMD',
    'GNF', 'GTQ', 'GYD', 'HKD', 'HNL', 'HTG', 'HUF', 'IDR', 'ILS', 'INR',
    'IQD', 'IRR', 'ISK', 'JMD', 'JOD', 'JPY', 'KES', 'KGS', 'KHR', 'KMF',
    'KPW', 'KRW', 'KWD', 'KYD', 'KZT', 'LAK', 'LBP', 'LKR', 'LRD', 'LSL',
    'LYD', 'MAD', 'MDL', 'MGA', 'MKD', 'MMK', 'MNT', 'MOP', 'MRU', 'MUR',
    'MVR', 'MWK', 'MXN', 'MYR', 'MZN', 'NAD', 'NGN', 'NIO', 'NOK', 'NPR',
    'NZD', 'OMR', 'PAB', 'PEN', 'PGK', 'PHP', 'PKR', 'PLN', 'PYG', 'QAR',
    'RON', 'RSD', 'RUB', 'RWF', 'SAR', 'SBD', 'SCR', 'SDG', 'SEK', 'SGD',
    'SHP', 'SLE', 'SOS', 'SRD', 'SSP', 'STN', 'SYP', 'SZL', 'THB', 'TJS',
    'TMT', 'TND', 'TOP', 'TRY', 'TTD', 'TWD', 'TZS', 'UAH', 'UGX', 'USD',
    'UYU', 'UZS', 'VES', 'VND', 'VUV', 'WST', 'YER', 'ZAR', 'ZMW', 'ZWL',
})


def is_fiat_currency_code(code: str) -> bool:
    """Является ли код фиатной валютой (ISO 4217)"""
    if not code:
        return False
    return code.strip().upper() in ISO_4217_CODES


@dataclass(frozen=True)
class FiatCurrency:
    """Фиатная валюта: сумма оффера уже в settlement units"""
    code: str

    is_fiat = True

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class CryptoCurrency:
    """Крипто-актив: сумма оффера в единицах актива"""
    code: str

    is_fiat = False

    def __str__(self) -> str:
        return self.code


Currency = Union[FiatCurrency, CryptoCurrency]


def classify_currency(code: str) -> Currency:
    """
    Определить тип валюты по коду

    Args:
        code: Код валюты ("USD", "BTC", "usdt")

    Returns:
        FiatCurrency или CryptoCurrency

    Raises:
        ValueError: Если код пустой
    """
    if not code or not code.strip():
        raise ValueError("Currency code is required")

    normalized = code.strip().upper()
    if normalized in ISO_4217_CODES:
        return FiatCurrency(normalized)
    return CryptoCurrency(normalized)
