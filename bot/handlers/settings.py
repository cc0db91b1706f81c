"""
Хендлеры для управления настройками (префиллы визарда создания оффера)
"""
from html import escape

from aiogram import Router, F
from aiogram.types import CallbackQuery, Message

from bot.keyboards.offer_kb import WALLET_LABELS
from bot.keyboards.settings_kb import (
    get_settings_menu_kb,
    get_default_wallet_kb,
    get_auto_cancel_kb,
)
from storage.user_settings import UserSettings
import config
import logging

logger = logging.getLogger(__name__)
router = Router()


def _settings_text(user_settings: UserSettings) -> str:
    wallet = WALLET_LABELS.get(user_settings.default_wallet_type, "❔ спрашивать")
    auto_cancel = f"{user_settings.default_auto_cancel} мин" if user_settings.default_auto_cancel else "выключен"
    kyc_text = "✅ Требуется" if user_settings.kyc_required else "❌ Не требуется"
    terms = escape(user_settings.default_terms) if user_settings.default_terms else "—"

    text = f"""
⚙️ <b>Настройки офферов</b>

<b>Префиллы нового оффера:</b>

👛 Кошелёк: {wallet}
⏱ Auto-cancel: {auto_cancel}
🪪 KYC: {kyc_text}
🌍 Страна: {user_settings.default_country or '—'}
📝 Условия: {terms}
↕️ Лимиты: ${user_settings.default_min_limit:g} – ${user_settings.default_max_limit:g}

💡 Условия и страна запоминаются из последнего опубликованного оффера.
"""
    return text.strip()


@router.message(F.text == "⚙️ Настройки")
async def settings_handler(message: Message, settings_storage):
    """Показать настройки"""
    user_settings = await settings_storage.get_settings(message.from_user.id)
    await message.answer(
        _settings_text(user_settings),
        reply_markup=get_settings_menu_kb(user_settings.kyc_required)
    )


async def _render_menu(callback: CallbackQuery, settings_storage):
    user_settings = await settings_storage.get_settings(callback.from_user.id)
    await callback.message.edit_text(
        _settings_text(user_settings),
        reply_markup=get_settings_menu_kb(user_settings.kyc_required)
    )


@router.callback_query(F.data == "set_back_to_menu")
async def back_to_settings_menu(callback: CallbackQuery, settings_storage):
    """Вернуться в меню настроек"""
    await callback.answer()
    await _render_menu(callback, settings_storage)


# ============================================================
# CALLBACK: Default Wallet
# ============================================================

@router.callback_query(F.data == "set_default_wallet")
async def set_default_wallet_menu(callback: CallbackQuery, settings_storage):
    """Меню выбора кошелька по умолчанию"""
    await callback.answer()
    user_settings = await settings_storage.get_settings(callback.from_user.id)
    await callback.message.edit_text(
        "👛 <b>Кошелёк по умолчанию</b>\n\nБудет выбран в шаге 2 автоматически:",
        reply_markup=get_default_wallet_kb(user_settings.default_wallet_type)
    )


@router.callback_query(F.data.startswith("set_wallet:"))
async def set_default_wallet_value(callback: CallbackQuery, settings_storage):
    """Установить кошелёк по умолчанию"""
    value = callback.data.split(":")[1]
    wallet = None if value == "none" else value

    if wallet is not None and wallet not in config.SUPPORTED_WALLET_TYPES:
        await callback.answer("❌ Неподдерживаемый кошелёк", show_alert=True)
        return

    await settings_storage.update(callback.from_user.id, default_wallet_type=wallet)
    logger.info(f"User {callback.from_user.id} set default wallet: {wallet}")

    await callback.answer("✅ Сохранено")
    await _render_menu(callback, settings_storage)


# ============================================================
# CALLBACK: Auto-cancel / KYC
# ============================================================

@router.callback_query(F.data == "set_auto_cancel")
async def set_auto_cancel_menu(callback: CallbackQuery, settings_storage):
    """Меню выбора auto-cancel"""
    await callback.answer()
    user_settings = await settings_storage.get_settings(callback.from_user.id)
    await callback.message.edit_text(
        "⏱ <b>Auto-cancel по умолчанию</b>\n\nНеоплаченная сделка отменится через:",
        reply_markup=get_auto_cancel_kb(user_settings.default_auto_cancel)
    )


@router.callback_query(F.data.startswith("set_ac:"))
async def set_auto_cancel_value(callback: CallbackQuery, settings_storage):
    """Установить auto-cancel"""
    minutes = int(callback.data.split(":")[1])

    if minutes != 0 and minutes not in config.AUTO_CANCEL_PRESETS:
        await callback.answer("❌ Неверное значение", show_alert=True)
        return

    await settings_storage.update(callback.from_user.id, default_auto_cancel=minutes)
    await callback.answer("✅ Сохранено")
    await _render_menu(callback, settings_storage)


@router.callback_query(F.data == "set_kyc_toggle")
async def toggle_kyc(callback: CallbackQuery, settings_storage):
    """Переключить KYC по умолчанию"""
    user_settings = await settings_storage.get_settings(callback.from_user.id)
    await settings_storage.update(callback.from_user.id, kyc_required=not user_settings.kyc_required)
    await callback.answer("✅ Сохранено")
    await _render_menu(callback, settings_storage)


@router.callback_query(F.data == "set_reset_prefill")
async def reset_prefill(callback: CallbackQuery, settings_storage):
    """Забыть условия сделки и страну"""
    await settings_storage.update(callback.from_user.id, default_terms="", default_country="")

    await callback.answer("🧹 Сброшено")
    await _render_menu(callback, settings_storage)
