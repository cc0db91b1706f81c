"""
Offer Wizard - Шаг 9: Проверка и публикация
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery
from aiogram.fsm.context import FSMContext
from loguru import logger

from bot.keyboards import offer_kb
from bot.keyboards.main_menu import get_main_menu
from bot.states.offer_states import OfferStates
from services.p2p_offer import OfferSessionRegistry, TradeDraft
from storage.user_settings import UserSettingsStorage
from .utils import SESSION_EXPIRED_TEXT, get_session, show_step

router = Router()


async def remember_defaults(settings_storage: UserSettingsStorage, user_id: int, draft: TradeDraft):
    """Запомнить условия, страну и кошелёк как префиллы следующего оффера"""
    changes = dict(
        default_terms=draft.trade_settings.terms_of_trade,
        default_country=draft.location_settings.country,
        default_auto_cancel=draft.trade_settings.auto_cancel,
        kyc_required=draft.trade_settings.kyc_required,
    )
    if draft.wallet_type is not None:
        changes["default_wallet_type"] = draft.wallet_type.value
    await settings_storage.update(user_id, **changes)


@router.callback_query(OfferStates.review, F.data == "offer:next")
async def offer_publish(
    callback: CallbackQuery,
    state: FSMContext,
    offer_sessions: OfferSessionRegistry,
    settings_storage: UserSettingsStorage,
):
    """Complete: отправка оффера (повторные нажатия игнорируются)"""
    user_id = callback.from_user.id
    session = get_session(offer_sessions, user_id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    if session.pipeline.is_submitting:
        await callback.answer("⏳ Оффер уже публикуется...")
        return

    draft = session.draft

    # Убираем клавиатуру на время отправки
    await callback.message.edit_text("⏳ <b>Публикуем оффер...</b>", reply_markup=None)
    await callback.answer()

    await session.next()
    result = session.last_result

    if result is None or not result.success:
        await show_step(callback.message, session, state)
        return

    await offer_sessions.close(user_id)
    await state.clear()

    try:
        await remember_defaults(settings_storage, user_id, draft)
    except Exception as e:
        logger.error(f"Failed to save offer defaults for user {user_id}: {e}")

    offer_id = result.offer.get("id") if isinstance(result.offer, dict) else None
    await callback.message.edit_text(
        "✅ <b>Оффер опубликован!</b>\n\n"
        + (f"🆔 <code>{offer_id}</code>\n" if offer_id else "")
        + "Оффер появится в списке после модерации.",
        reply_markup=offer_kb.get_offer_created_keyboard()
    )
    await callback.message.answer(
        "Используй главное меню для навигации 👇",
        reply_markup=get_main_menu()
    )
