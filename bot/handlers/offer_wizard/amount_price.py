"""
Offer Wizard - Шаг 4: Количество, модель цены, лимиты

amount и total взаимно выводятся через final_price,
источник правды - поле, которое пользователь редактировал последним.
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext
from loguru import logger

from bot.states.offer_states import OfferStates
from services.p2p_offer import (
    DraftPatchError,
    MarginType,
    OfferSessionRegistry,
    PriceModel,
)
from services.p2p_offer.draft_store import (
    AutoAdjustAmount,
    SetAmount,
    SetFixedPrice,
    SetLimits,
    SetMargin,
    SetPriceModel,
    SetTotal,
)
from utils.validators import parse_number
from .utils import SESSION_EXPIRED_TEXT, ask_input, get_session, show_step

router = Router()

# Поля ввода: prompt для пользователя
INPUT_PROMPTS = {
    "amount": "✏️ Введи количество в <b>{code}</b>:",
    "total": "✏️ Введи total (amount будет пересчитан по цене):",
    "min": "⬇️ Введи минимальный лимит сделки в <b>USD</b>:",
    "max": "⬆️ Введи максимальный лимит сделки в <b>USD</b>:",
    "price": "💲 Введи фиксированную цену за 1 <b>{code}</b> в USD:",
    "margin": "📐 Введи маржу (например: 2 или -1.5):",
}


def _build_patch(field: str, value: float):
    """Patch для введённого значения"""
    if field == "amount":
        return SetAmount(value)
    if field == "total":
        return SetTotal(value)
    if field == "min":
        return SetLimits(min=value)
    if field == "max":
        return SetLimits(max=value)
    if field == "price":
        return SetFixedPrice(value)
    if field == "margin":
        return SetMargin(value=value)
    raise ValueError(f"Unknown amount field: {field}")


@router.callback_query(OfferStates.amount_price, F.data.startswith("omodel:"))
async def price_model_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Смена модели цены (FIXED / MARKET / MARGIN)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    value = callback.data.split(":")[1]
    if value not in PriceModel.__members__:
        await callback.answer("❌ Неверная модель цены", show_alert=True)
        return

    session.apply(SetPriceModel(PriceModel(value)))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.amount_price, F.data == "oamt:mtype")
async def margin_type_toggled(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Маржа: проценты <-> фиксированная сумма"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    current = session.draft.price_config.margin_type
    new_type = MarginType.FIXED if current != MarginType.FIXED else MarginType.PERCENTAGE

    try:
        session.apply(SetMargin(margin_type=new_type))
    except DraftPatchError as e:
        await callback.answer(f"❌ {e}", show_alert=True)
        return

    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.amount_price, F.data == "oamt:auto")
async def auto_adjust(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Явный auto-adjust: amount = минимум + 5%"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    before = session.draft.amount
    session.apply(AutoAdjustAmount())
    logger.info(
        f"Auto-adjusted amount for user {callback.from_user.id}: {before} -> {session.draft.amount}"
    )

    await show_step(callback.message, session, state, notice="🪄 Количество поднято до минимума (+5%)")
    await callback.answer()


@router.callback_query(OfferStates.amount_price, F.data.startswith("oamt:"))
async def amount_field_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Запросить ввод значения для поля"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    field = callback.data.split(":")[1]
    prompt = INPUT_PROMPTS.get(field)
    if prompt is None:
        await callback.answer("❌ Неизвестное поле", show_alert=True)
        return

    if field == "total" and not session.draft.price_config.final_price > 0:
        await callback.answer("⚠️ Цена ещё недоступна - введи количество", show_alert=True)
        return

    await ask_input(
        callback.message,
        state,
        OfferStates.entering_amount_value,
        field,
        prompt.format(code=session.draft.currency_code),
    )
    await callback.answer()


@router.message(OfferStates.entering_amount_value)
async def amount_value_entered(message: Message, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка введённого значения"""
    session = get_session(offer_sessions, message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(SESSION_EXPIRED_TEXT)
        return

    data = await state.get_data()
    field = data.get("input_field")

    try:
        value = parse_number(message.text or "")
    except ValueError:
        await message.answer("❌ Нужно число. Попробуй ещё раз:")
        return

    if field != "margin" and value < 0:
        await message.answer("❌ Значение не может быть отрицательным. Попробуй ещё раз:")
        return

    try:
        session.apply(_build_patch(field, value))
    except (DraftPatchError, ValueError) as e:
        await message.answer(f"❌ {e}\n\nПопробуй ещё раз:")
        return

    await state.update_data(input_field=None)
    await show_step(message, session, state, edit=False)
