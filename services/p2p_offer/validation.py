"""
Validation Engine - проверки шагов визарда

Для шага Amount & Price - упорядоченный список нарушений:
1. amount > 0
2. SELL: amount <= available_balance
3. final_price > 0
4. min > 0, max > 0, max >= min
5. total value >= min (с указанием недостачи)
6. total value <= max (с указанием превышения)

Шаги 5-7 проверяются только по своим обязательным полям.
Ошибки валидации никогда не бросаются, только возвращаются.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from utils.validators import format_limit
from .converter import AmountConverter
from .models import Step, TradeDraft, TradeType

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """
    Результат проверки шага.

    Attributes:
        errors: Нарушения в порядке правил, показываются пользователю как есть
        below_minimum: Сработало правило минимума (доступен auto-adjust)
        shortfall: Недостача до минимума в USD
        excess: Превышение максимума в USD
        limit_value: Значение в USD, сравниваемое с лимитами
    """
    errors: List[str] = field(default_factory=list)
    below_minimum: bool = False
    shortfall: Optional[float] = None
    excess: Optional[float] = None
    limit_value: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def can_auto_adjust(self) -> bool:
        """Автоисправление предлагается только для случая "ниже минимума" """
        return self.below_minimum


def build_converter(draft: TradeDraft, final_price: Optional[float] = None) -> AmountConverter:
    """Конвертер для текущего состояния черновика"""
    price = draft.price_config.final_price if final_price is None else final_price
    return AmountConverter(
        currency=draft.currency,
        final_price=price,
        min_limit=draft.amount_config.min,
        max_limit=draft.amount_config.max,
    )


def validate_amount_price(
    draft: TradeDraft,
    final_price: Optional[float] = None,
    converter: Optional[AmountConverter] = None,
) -> ValidationResult:
    """
    Проверка шага Amount & Price.

    Args:
        draft: Черновик оффера
        final_price: Итоговая цена (по умолчанию из draft.price_config)
        converter: Готовый конвертер (по умолчанию строится из draft)

    Returns:
        ValidationResult с нарушениями в фиксированном порядке
    """
    converter = converter or build_converter(draft, final_price)
    result = ValidationResult()

    amount = draft.amount_config.total or 0.0
    price = converter.final_price
    min_limit = draft.amount_config.min or 0.0
    max_limit = draft.amount_config.max or 0.0

    # 1. Amount
    if amount <= 0:
        result.errors.append("Amount must be greater than 0")

    # 2. Баланс для SELL (если баланс не получен - пропускаем, проверим при submit)
    balance = draft.available_balance
    if draft.trade_type == TradeType.SELL and balance is not None and amount > balance:
        result.errors.append(
            f"Amount exceeds available balance of {format_limit(balance)} {draft.currency_code}"
        )

    # 3. Price
    if price <= 0:
        result.errors.append("Price must be greater than 0")

    # 4. Limits
    if min_limit <= 0:
        result.errors.append("Minimum limit must be greater than 0")

    if max_limit <= 0:
        result.errors.append("Maximum limit must be greater than 0")

    if max_limit < min_limit:
        result.errors.append("Maximum limit must be greater than or equal to minimum limit")

    # 5-6. Total value vs limits (только если значение вычислимо)
    limit_value = converter.limit_value(amount)
    result.limit_value = limit_value

    if limit_value is not None:
        if min_limit > 0 and converter.is_below_minimum(amount):
            result.below_minimum = True
            result.shortfall = min_limit - limit_value
            result.errors.append(
                f"Total value ({limit_value:.2f} USD) is less than minimum limit "
                f"({format_limit(min_limit)} USD)"
            )

        if max_limit > 0 and converter.is_above_maximum(amount):
            result.excess = limit_value - max_limit
            result.errors.append(
                f"Total value ({limit_value:.2f} USD) is greater than maximum limit "
                f"({format_limit(max_limit)} USD)"
            )

    if result.errors:
        logger.debug(f"Amount/price validation failed: {result.errors}")

    return result


# ============================================================
# Проверки обязательных полей остальных шагов
# ============================================================

def _check_trade_type(draft: TradeDraft) -> List[str]:
    return [] if draft.trade_type else ["Trade type is required"]


def _check_wallet_type(draft: TradeDraft) -> List[str]:
    return [] if draft.wallet_type else ["Wallet type is required"]


def _check_currency(draft: TradeDraft) -> List[str]:
    return [] if draft.currency else ["Currency is required"]


def _check_payment_methods(draft: TradeDraft) -> List[str]:
    if len(draft.payment_methods) < 1:
        return ["At least one payment method is required"]
    return []


def _check_trade_settings(draft: TradeDraft) -> List[str]:
    if not draft.trade_settings.terms_of_trade.strip():
        return ["Terms of trade are required"]
    return []


def _check_location(draft: TradeDraft) -> List[str]:
    if not draft.location_settings.country.strip():
        return ["Country is required"]
    return []


def _check_nothing(draft: TradeDraft) -> List[str]:
    return []


STEP_CHECKS: Dict[Step, Callable[[TradeDraft], List[str]]] = {
    Step.TRADE_TYPE: _check_trade_type,
    Step.WALLET_TYPE: _check_wallet_type,
    Step.CURRENCY: _check_currency,
    Step.PAYMENT_METHODS: _check_payment_methods,
    Step.TRADE_SETTINGS: _check_trade_settings,
    Step.LOCATION: _check_location,
    Step.USER_REQUIREMENTS: _check_nothing,
    Step.REVIEW: _check_nothing,
}


def validate_step(step: int, draft: TradeDraft) -> ValidationResult:
    """
    Проверить шаг визарда.

    Шаг считается завершённым ровно тогда, когда нарушений нет.
    """
    step = Step(step)
    if step == Step.AMOUNT_PRICE:
        return validate_amount_price(draft)
    return ValidationResult(errors=STEP_CHECKS[step](draft))
