"""
Amount Converter - конвертация amount <-> total и лимиты

Два режима по типу валюты оффера:
- Фиат: amount уже в settlement units, лимиты min/max применяются напрямую.
  total_value = amount / final_price (только для отображения).
- Крипта: amount в единицах актива, лимиты в USD конвертируются:
  min_amount = min / final_price, total_value = amount * final_price.

ВАЖНО: min/max ВСЕГДА в USD, независимо от валюты оффера.
"""
import logging
from typing import Optional

import config
from .currency import Currency

logger = logging.getLogger(__name__)


class AmountConverter:
    """
    Конвертер сумм для одной комбинации (валюта, цена, лимиты).

    При final_price <= 0 все производные значения недоступны (None),
    наружу никогда не уходят inf/nan.
    """

    def __init__(
        self,
        currency: Optional[Currency],
        final_price: float,
        min_limit: float = 0.0,
        max_limit: float = 0.0,
    ):
        self.currency = currency
        self.final_price = final_price or 0.0
        self.min_limit = min_limit or 0.0
        self.max_limit = max_limit or 0.0

    @property
    def is_fiat(self) -> bool:
        return bool(self.currency and self.currency.is_fiat)

    @property
    def has_price(self) -> bool:
        return self.final_price > 0

    # ============================================================
    # amount <-> total
    # ============================================================

    def amount_to_total(self, amount: float) -> Optional[float]:
        """Редактировали amount: total = amount * price"""
        if not self.has_price:
            return None
        return amount * self.final_price

    def total_to_amount(self, total: float) -> Optional[float]:
        """Редактировали total: amount = total / price"""
        if not self.has_price:
            return None
        return total / self.final_price

    # ============================================================
    # Лимиты
    # ============================================================

    @property
    def min_amount(self) -> Optional[float]:
        """Минимальный amount в единицах валюты оффера"""
        if self.is_fiat:
            return self.min_limit
        if not self.has_price:
            return None
        return self.min_limit / self.final_price

    @property
    def max_amount(self) -> Optional[float]:
        """Максимальный amount в единицах валюты оффера"""
        if self.is_fiat:
            return self.max_limit
        if not self.has_price:
            return None
        return self.max_limit / self.final_price

    def epsilon(self) -> float:
        """Допуск для граничных сравнений: min_amount * 0.0001"""
        min_amount = self.min_amount
        if not min_amount or min_amount <= 0:
            return 0.0
        return min_amount * config.LIMIT_EPSILON_RATIO

    def is_below_minimum(self, amount: float) -> bool:
        min_amount = self.min_amount
        if min_amount is None:
            return False
        return amount < min_amount - self.epsilon()

    def is_above_maximum(self, amount: float) -> bool:
        max_amount = self.max_amount
        if max_amount is None:
            return False
        return amount > max_amount + self.epsilon()

    def calculate_minimum_amount(self) -> Optional[float]:
        """
        Минимальный amount с буфером +5% над строгим минимумом.

        Используется ТОЛЬКО явным действием "auto-adjust", никогда молча.

        Example:
            Crypto, min = 100 USD, price = 50000
            (100 / 50000) * 1.05 = 0.0021
        """
        if not self.has_price or self.min_limit <= 0:
            return None

        if self.is_fiat:
            return (self.min_limit * self.final_price) * config.MIN_AMOUNT_BUFFER
        return (self.min_limit / self.final_price) * config.MIN_AMOUNT_BUFFER

    # ============================================================
    # Total value
    # ============================================================

    def total_value(self, amount: float) -> Optional[float]:
        """
        Денежный итог для отображения.

        Фиат: amount / price (эквивалент в крипте).
        Крипта: amount * price (USD стоимость).
        """
        if not self.has_price:
            return None
        if self.is_fiat:
            return amount / self.final_price
        return amount * self.final_price

    def limit_value(self, amount: float) -> Optional[float]:
        """
        Значение в USD, которое сравнивается с лимитами.

        Для фиата - сама сумма, для крипты - amount * price.
        """
        if self.is_fiat:
            return amount
        if not self.has_price:
            return None
        return amount * self.final_price

    def format_total_value(self, amount: float) -> str:
        """Кэш-строка total_value (2 знака), "0.00" если цена недоступна"""
        value = self.total_value(amount)
        if value is None:
            return "0.00"
        return f"{value:.2f}"
