"""
Pricing Engine - расчёт итоговой цены оффера

Три модели:
- FIXED: цена задана вручную
- MARKET: текущая рыночная цена
- MARGIN: рынок +/- маржа (процент или фиксированная сумма)

BUY оффер с маржой поднимает цену над рынком, SELL - опускает ниже рынка.
"""
import logging
from dataclasses import replace
from typing import Optional

from .models import PriceModel, MarginType, TradeType, PriceConfig

logger = logging.getLogger(__name__)


def calculate_final_price(
    price_model: PriceModel,
    market_price: float,
    fixed_value: float = 0.0,
    margin_value: float = 0.0,
    margin_type: Optional[MarginType] = MarginType.PERCENTAGE,
    trade_type: Optional[TradeType] = TradeType.BUY,
) -> float:
    """
    Рассчитать итоговую цену 1 единицы валюты в USD

    Args:
        price_model: Модель ценообразования
        market_price: Текущая рыночная цена
        fixed_value: Цена для FIXED модели
        margin_value: Маржа для MARGIN модели
        margin_type: "percentage" или "fixed"
        trade_type: BUY или SELL

    Returns:
        Итоговая цена. Значение <= 0 НЕ клампится - это ошибка валидации.

    Example:
        MARGIN, percentage, BUY, market=100, margin=10
        final = 100 * (1 + 10/100) = 110
    """
    market_price = market_price or 0.0

    if price_model == PriceModel.FIXED:
        return fixed_value or 0.0

    if price_model == PriceModel.MARKET:
        return market_price

    if price_model == PriceModel.MARGIN:
        margin = margin_value or 0.0
        is_buy = trade_type != TradeType.SELL

        if margin_type == MarginType.FIXED:
            return market_price + margin if is_buy else market_price - margin

        # percentage (по умолчанию)
        multiplier = 1 + margin / 100 if is_buy else 1 - margin / 100
        return market_price * multiplier

    logger.warning(f"Unknown price model: {price_model}")
    return 0.0


def reprice(price_config: PriceConfig, trade_type: Optional[TradeType]) -> PriceConfig:
    """
    Пересчитать final_price для текущей конфигурации.

    Вызывается на каждое изменение: смена модели, тик рыночной цены,
    редактирование маржи или смена направления сделки.
    """
    fixed_value = price_config.value if price_config.model == PriceModel.FIXED else 0.0
    margin_value = price_config.value if price_config.model == PriceModel.MARGIN else 0.0

    final_price = calculate_final_price(
        price_model=price_config.model,
        market_price=price_config.market_price,
        fixed_value=fixed_value,
        margin_value=margin_value,
        margin_type=price_config.margin_type or MarginType.PERCENTAGE,
        trade_type=trade_type,
    )

    return replace(price_config, final_price=final_price)


def describe_price(price_config: PriceConfig, currency_code: str) -> str:
    """Человекочитаемое описание цены для карточек"""
    final = f"{price_config.final_price:,.2f} USD per {currency_code or 'unit'}"

    if price_config.model == PriceModel.FIXED:
        return f"Fixed: {final}"

    if price_config.model == PriceModel.MARKET:
        return f"Market: {final}"

    if price_config.margin_type == MarginType.FIXED:
        margin = f"{price_config.value:+g} USD"
    else:
        margin = f"{price_config.value:+g}%"
    return f"Margin {margin}: {final}"
