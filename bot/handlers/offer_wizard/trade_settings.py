"""
Offer Wizard - Шаг 6: Настройки сделки

Условия сделки обязательны. Auto-cancel: пресет или выключен (0).
"Скрытый оффер" = visibility PRIVATE.
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext

import config
from bot.states.offer_states import OfferStates
from services.p2p_offer import DraftPatchError, OfferSessionRegistry, Visibility
from services.p2p_offer.draft_store import UpdateTradeSettings
from .utils import SESSION_EXPIRED_TEXT, ask_input, get_session, show_step

router = Router()

MAX_TERMS_LENGTH = 1000


@router.callback_query(OfferStates.trade_settings, F.data.startswith("oset:ac:"))
async def auto_cancel_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Пресет auto-cancel (0 = выключить)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    try:
        minutes = int(callback.data.split(":")[2])
    except ValueError:
        await callback.answer("❌ Неверное значение", show_alert=True)
        return

    if minutes != 0 and minutes not in config.AUTO_CANCEL_PRESETS:
        await callback.answer("❌ Неверное значение", show_alert=True)
        return

    session.apply(UpdateTradeSettings(auto_cancel=minutes))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.trade_settings, F.data == "oset:hidden")
async def hidden_toggled(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Скрытый оффер <-> публичный"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    hidden = session.draft.trade_settings.visibility == Visibility.PRIVATE
    visibility = Visibility.PUBLIC if hidden else Visibility.PRIVATE

    session.apply(UpdateTradeSettings(visibility=visibility))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.trade_settings, F.data == "oset:kyc")
async def kyc_toggled(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """KYC обязателен / нет"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    kyc = session.draft.trade_settings.kyc_required
    session.apply(UpdateTradeSettings(kyc_required=not kyc))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.trade_settings, F.data.in_({"oset:terms", "oset:notes"}))
async def text_field_selected(callback: CallbackQuery, state: FSMContext):
    """Запросить условия сделки или заметки"""
    field = callback.data.split(":")[1]

    if field == "terms":
        prompt = "📝 Отправь условия сделки (обязательно):"
    else:
        prompt = "🗒 Отправь дополнительные заметки (или «-» чтобы очистить):"

    await ask_input(callback.message, state, OfferStates.entering_settings_text, field, prompt)
    await callback.answer()


@router.message(OfferStates.entering_settings_text)
async def settings_text_entered(message: Message, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка условий / заметок"""
    session = get_session(offer_sessions, message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(SESSION_EXPIRED_TEXT)
        return

    data = await state.get_data()
    field = data.get("input_field")
    text = (message.text or "").strip()

    if len(text) > MAX_TERMS_LENGTH:
        await message.answer(f"❌ Слишком длинный текст (максимум {MAX_TERMS_LENGTH} символов)")
        return

    if field == "terms":
        if not text:
            await message.answer("❌ Условия сделки не могут быть пустыми. Попробуй ещё раз:")
            return
        patch = UpdateTradeSettings(terms_of_trade=text)
    else:
        patch = UpdateTradeSettings(additional_notes="" if text == "-" else text)

    try:
        session.apply(patch)
    except DraftPatchError as e:
        await message.answer(f"❌ {e}")
        return

    await state.update_data(input_field=None)
    await show_step(message, session, state, edit=False)
