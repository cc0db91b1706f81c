from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Optional


def parse_number(text: str) -> float:
    """
    Парсинг числа из пользовательского ввода.

    Принимает "0.5", "0,5", "1 000", "$100".

    Raises:
        ValueError: Если строка не число или не конечное число
    """
    if text is None:
        raise ValueError("Empty input")

    cleaned = text.strip().replace(' ', '').replace('$', '').replace(',', '.')
    if not cleaned:
        raise ValueError("Empty input")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Not a number: {text}")

    if not value.is_finite():
        raise ValueError(f"Not a finite number: {text}")

    return float(value)


def round_amount(amount: float, decimals: int = 8) -> float:
    """
    Округляет amount вниз до decimals знаков используя Decimal.

    ВАЖНО: Использует Decimal, чтобы избежать float артефактов (0.30000004)
    """
    if amount <= 0:
        return 0.0

    step = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(amount)).quantize(step, rounding=ROUND_DOWN)
    return float(rounded)


def format_number(value: float, decimals: int = 2) -> str:
    """
    Форматирование числа с заданным количеством десятичных знаков.
    Убирает trailing zeros.
    """
    formatted = f"{value:.{decimals}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    return formatted


def format_limit(value: float) -> str:
    """
    Число как есть, без лишнего ".0": 100.0 -> "100", 100.5 -> "100.5"
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_usd(value: float) -> str:
    """Форматирование суммы в USD"""
    return f"${format_number(value, 2)}"


def format_amount(value: Optional[float], currency_code: str, is_fiat: bool) -> str:
    """Сумма в валюте оффера: фиат 2 знака, крипта до 8"""
    if value is None:
        return "—"
    decimals = 2 if is_fiat else 8
    return f"{format_number(value, decimals)} {currency_code}"
