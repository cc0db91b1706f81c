"""
Offer Wizard - Шаги 1-3: Тип сделки, кошелёк, валюта
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery
from aiogram.fsm.context import FSMContext
from loguru import logger

import config
from bot.states.offer_states import OfferStates
from services.p2p_offer import (
    DraftPatchError,
    OfferSession,
    OfferSessionRegistry,
    TradeType,
    WalletType,
)
from services.p2p_offer.draft_store import SetCurrency, SetTradeType, SetWalletType
from .utils import SESSION_EXPIRED_TEXT, get_session, show_step

router = Router()


async def _advance(callback: CallbackQuery, session: OfferSession, state: FSMContext):
    """После выбора - сразу следующий шаг (выбор завершает шаг)"""
    await session.next()
    await show_step(callback.message, session, state)
    await callback.answer()


# ============================================================
# Шаг 1: Buy / Sell
# ============================================================

@router.callback_query(OfferStates.choosing_trade_type, F.data.startswith("otype:"))
async def trade_type_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка выбора типа сделки"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    value = callback.data.split(":")[1]
    if value not in TradeType.__members__:
        await callback.answer("❌ Неверный тип сделки", show_alert=True)
        return

    session.apply(SetTradeType(TradeType(value)))
    await _advance(callback, session, state)


# ============================================================
# Шаг 2: Тип кошелька
# ============================================================

@router.callback_query(OfferStates.choosing_wallet, F.data.startswith("owallet:"))
async def wallet_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка выбора кошелька"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    value = callback.data.split(":")[1]
    if value not in config.SUPPORTED_WALLET_TYPES:
        await callback.answer("❌ Неподдерживаемый кошелёк", show_alert=True)
        return

    session.apply(SetWalletType(WalletType(value)))
    await _advance(callback, session, state)


# ============================================================
# Шаг 3: Валюта
# ============================================================

@router.callback_query(OfferStates.choosing_currency, F.data.startswith("ocur:"))
async def currency_selected(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка выбора валюты (баланс для SELL загрузится на шаге 4)"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    code = callback.data.split(":", 1)[1]
    try:
        session.apply(SetCurrency(code))
    except DraftPatchError as e:
        await callback.answer(f"❌ {e}", show_alert=True)
        return

    logger.debug(f"User {callback.from_user.id} selected currency {session.draft.currency_code}")
    await _advance(callback, session, state)
