"""
Inline клавиатуры для настроек (префиллы визарда)
"""
from typing import Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
import config

from bot.keyboards.offer_kb import WALLET_LABELS


def get_settings_menu_kb(kyc_required: bool) -> InlineKeyboardMarkup:
    """
    Главное меню настроек

    Returns:
        InlineKeyboardMarkup
    """
    builder = InlineKeyboardBuilder()

    builder.row(
        InlineKeyboardButton(text="👛 Кошелёк по умолчанию", callback_data="set_default_wallet"),
    )
    builder.row(
        InlineKeyboardButton(text="⏱ Auto-cancel", callback_data="set_auto_cancel"),
        InlineKeyboardButton(
            text=f"{'✅' if kyc_required else '⬜️'} KYC",
            callback_data="set_kyc_toggle"
        )
    )
    builder.row(
        InlineKeyboardButton(text="🧹 Сбросить условия и страну", callback_data="set_reset_prefill")
    )

    return builder.as_markup()


def get_default_wallet_kb(current: Optional[str]) -> InlineKeyboardMarkup:
    """
    Клавиатура выбора кошелька по умолчанию

    Args:
        current: Текущий кошелёк (None - спрашивать каждый раз)
    """
    builder = InlineKeyboardBuilder()

    for wallet in config.SUPPORTED_WALLET_TYPES:
        label = WALLET_LABELS.get(wallet, wallet)
        if wallet == current:
            label = f"✅ {label}"
        builder.row(InlineKeyboardButton(text=label, callback_data=f"set_wallet:{wallet}"))

    builder.row(
        InlineKeyboardButton(
            text=("✅ " if current is None else "") + "❔ Спрашивать",
            callback_data="set_wallet:none"
        )
    )
    builder.row(InlineKeyboardButton(text="◀️ Назад", callback_data="set_back_to_menu"))

    return builder.as_markup()


def get_auto_cancel_kb(current: int) -> InlineKeyboardMarkup:
    """Клавиатура выбора auto-cancel по умолчанию"""
    builder = InlineKeyboardBuilder()

    for minutes in config.AUTO_CANCEL_PRESETS:
        label = f"{minutes} мин"
        if minutes == current:
            label = f"✅ {label}"
        builder.button(text=label, callback_data=f"set_ac:{minutes}")
    builder.adjust(3)

    builder.row(
        InlineKeyboardButton(
            text=("✅ " if current == 0 else "") + "Выключен",
            callback_data="set_ac:0"
        )
    )
    builder.row(InlineKeyboardButton(text="◀️ Назад", callback_data="set_back_to_menu"))

    return builder.as_markup()
