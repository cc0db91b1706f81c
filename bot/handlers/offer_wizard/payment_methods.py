"""
Offer Wizard - Шаг 5: Платёжные методы (+ свои методы)
"""
from html import escape

from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext
from loguru import logger

from bot.states.offer_states import OfferStates
from services.p2p_client import P2PAPIError
from services.p2p_offer import DraftPatchError, OfferSessionRegistry
from services.p2p_offer.draft_store import DeselectPaymentMethod, SelectPaymentMethod
from .utils import SESSION_EXPIRED_TEXT, ask_input, get_session, show_step

router = Router()


@router.callback_query(OfferStates.payment_methods, F.data.startswith("opm:toggle:"))
async def method_toggled(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Выбрать / снять метод"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    method_id = callback.data.split(":", 2)[2]
    method = session.find_payment_method(method_id)
    if method is None:
        await callback.answer("❌ Метод не найден", show_alert=True)
        return

    selected = any(m.id == method_id for m in session.draft.payment_methods)
    try:
        if selected:
            session.apply(DeselectPaymentMethod(method_id))
        else:
            session.apply(SelectPaymentMethod(method))
    except DraftPatchError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.payment_methods, F.data == "opm:add")
async def method_add(callback: CallbackQuery, state: FSMContext):
    """Запросить название своего метода"""
    await ask_input(
        callback.message,
        state,
        OfferStates.entering_custom_method,
        "add",
        "➕ <b>Свой способ оплаты</b>\n\n"
        "Отправь название, а со следующей строки - инструкцию для контрагента (необязательно).\n\n"
        "<i>Например:\nЗолотая Корона\nПеревод на имя Ивана И.</i>",
    )
    await callback.answer()


@router.callback_query(OfferStates.payment_methods, F.data.startswith("opm:rename:"))
async def method_rename(callback: CallbackQuery, state: FSMContext):
    """Запросить новое название своего метода"""
    method_id = callback.data.split(":", 2)[2]
    await state.update_data(method_id=method_id)
    await ask_input(
        callback.message,
        state,
        OfferStates.entering_custom_method,
        "rename",
        "✏️ Отправь новое название метода:",
    )
    await callback.answer()


@router.callback_query(OfferStates.payment_methods, F.data.startswith("opm:del:"))
async def method_delete(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Удалить свой метод (системные удалить нельзя)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    method_id = callback.data.split(":", 2)[2]
    try:
        await session.delete_custom_method(method_id)
    except P2PAPIError as e:
        logger.error(f"Failed to delete payment method {method_id}: {e}")
        await callback.answer("❌ Не удалось удалить метод", show_alert=True)
        return
    except ValueError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_step(callback.message, session, state, notice="🗑 Метод удалён")
    await callback.answer()


@router.message(OfferStates.entering_custom_method)
async def custom_method_entered(message: Message, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Создание или переименование своего метода"""
    session = get_session(offer_sessions, message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(SESSION_EXPIRED_TEXT)
        return

    data = await state.get_data()
    field = data.get("input_field")

    lines = (message.text or "").strip().split("\n", 1)
    name = lines[0].strip()
    instructions = lines[1].strip() if len(lines) > 1 else None

    if not name or len(name) > 64:
        await message.answer("❌ Название должно быть от 1 до 64 символов. Попробуй ещё раз:")
        return

    try:
        if field == "rename":
            await session.rename_custom_method(data.get("method_id"), name)
            notice = "✏️ Метод переименован"
        else:
            await session.add_custom_method(name, instructions=instructions)
            notice = f"✅ Метод «{escape(name)}» добавлен и выбран"
    except P2PAPIError as e:
        logger.error(f"Custom payment method {field} failed: {e}")
        await message.answer("❌ API отклонил запрос. Попробуй позже или выбери другой метод.")
        await state.update_data(input_field=None)
        await show_step(message, session, state, edit=False)
        return
    except ValueError as e:
        await message.answer(f"⚠️ {e}")
        await state.update_data(input_field=None)
        await show_step(message, session, state, edit=False)
        return

    await state.update_data(input_field=None, method_id=None)
    await show_step(message, session, state, edit=False, notice=notice)
