"""
Offer Wizard - Навигация (Cancel, Back, Next, переход к шагу)
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery
from aiogram.fsm.context import FSMContext
from loguru import logger

from bot.keyboards.main_menu import get_main_menu
from services.p2p_offer import OfferSessionRegistry
from .utils import SESSION_EXPIRED_TEXT, get_session, show_step

router = Router()


@router.callback_query(F.data == "offer:cancel")
async def offer_cancel(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Отмена создания оффера, черновик выбрасывается"""
    await offer_sessions.close(callback.from_user.id)
    await state.clear()
    await callback.message.edit_text(
        "❌ <b>Создание оффера отменено</b>",
        reply_markup=None
    )
    await callback.message.answer(
        "Используй главное меню для навигации 👇",
        reply_markup=get_main_menu()
    )
    await callback.answer()


@router.callback_query(F.data == "offer:back")
async def offer_back(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Возврат на предыдущий шаг (данные шага сохраняются)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    await session.back()
    await show_step(callback.message, session, state)
    await callback.answer()


# На шаге 9 "offer:next" раньше перехватывает review.router
@router.callback_query(F.data == "offer:next")
async def offer_next(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Continue: только если текущий шаг завершён"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    if not await session.next():
        errors = session.validate_current().errors
        await callback.answer(
            f"⚠️ {errors[0]}" if errors else "⚠️ Шаг не завершён",
            show_alert=True
        )
        return

    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(F.data.startswith("offer:goto:"))
async def offer_goto(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Переход к шагу (назад - всегда, вперёд - через завершённые шаги)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    try:
        step = int(callback.data.split(":")[2])
    except ValueError:
        await callback.answer("❌ Неверный шаг", show_alert=True)
        return

    if not await session.go_to(step):
        await callback.answer("⚠️ Сначала заверши предыдущие шаги", show_alert=True)
        return

    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(F.data == "offer:refresh")
async def offer_refresh(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Перерисовать шаг (свежая рыночная цена уже в черновике)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    await show_step(callback.message, session, state)
    await callback.answer("🔄 Обновлено")


@router.callback_query(F.data == "offer:input_cancel")
async def offer_input_cancel(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Выход из режима ввода без изменений"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await state.clear()
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    await state.update_data(input_field=None)
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(F.data == "offer:new")
async def offer_new(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry, settings_storage):
    """Новый визард после успешной публикации"""
    user_settings = await settings_storage.get_settings(callback.from_user.id)
    session = await offer_sessions.start(callback.from_user.id, user_settings)
    logger.debug(f"Offer wizard restarted for user {callback.from_user.id}")

    await show_step(callback.message, session, state, edit=False)
    await callback.answer()
