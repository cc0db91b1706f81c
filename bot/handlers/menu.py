"""
Базовые обработчики для кнопок главного меню
"""
from aiogram import Router, F
from aiogram.types import Message
from aiogram.fsm.context import FSMContext
from loguru import logger

from bot.handlers.offer_wizard.utils import show_step
from services.p2p_offer import OfferSessionRegistry

router = Router()


@router.message(F.text == "➕ Создать оффер")
async def create_offer_handler(
    message: Message,
    state: FSMContext,
    settings_storage,
    offer_sessions: OfferSessionRegistry,
):
    """Запуск Offer Wizard (незавершённый черновик выбрасывается)"""
    await state.clear()

    user_settings = await settings_storage.get_settings(message.from_user.id)
    session = await offer_sessions.start(message.from_user.id, user_settings)
    logger.info(f"User {message.from_user.id} opened offer wizard")

    await show_step(message, session, state, edit=False)
