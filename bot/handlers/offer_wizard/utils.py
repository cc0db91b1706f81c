"""
Offer Wizard - Утилиты (рендер шагов, доступ к сессии)
"""
from html import escape
from typing import Dict, List, Optional, Tuple

from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State
from aiogram.types import InlineKeyboardMarkup, Message
from loguru import logger

import config
from bot.keyboards import offer_kb
from bot.states.offer_states import OfferStates
from bot.utils.safe_edit import safe_edit_text
from services.p2p_client import P2PAPIError
from services.p2p_offer import (
    OfferSession,
    OfferSessionRegistry,
    Step,
    TOTAL_STEPS,
    TradeDraft,
    TradeType,
    Visibility,
    describe_price,
    validate_amount_price,
    validate_step,
)
from utils.validators import format_amount, format_limit, format_usd

STEP_STATES: Dict[Step, State] = {
    Step.TRADE_TYPE: OfferStates.choosing_trade_type,
    Step.WALLET_TYPE: OfferStates.choosing_wallet,
    Step.CURRENCY: OfferStates.choosing_currency,
    Step.AMOUNT_PRICE: OfferStates.amount_price,
    Step.PAYMENT_METHODS: OfferStates.payment_methods,
    Step.TRADE_SETTINGS: OfferStates.trade_settings,
    Step.LOCATION: OfferStates.location,
    Step.USER_REQUIREMENTS: OfferStates.requirements,
    Step.REVIEW: OfferStates.review,
}

STEP_TITLES: Dict[Step, str] = {
    Step.TRADE_TYPE: "Тип сделки",
    Step.WALLET_TYPE: "Кошелёк",
    Step.CURRENCY: "Валюта",
    Step.AMOUNT_PRICE: "Количество и цена",
    Step.PAYMENT_METHODS: "Способы оплаты",
    Step.TRADE_SETTINGS: "Условия сделки",
    Step.LOCATION: "Локация",
    Step.USER_REQUIREMENTS: "Требования к контрагенту",
    Step.REVIEW: "Проверка",
}

SESSION_EXPIRED_TEXT = "⚠️ Сессия устарела. Начни заново: ➕ Создать оффер"


def get_session(offer_sessions: OfferSessionRegistry, user_id: int) -> Optional[OfferSession]:
    """Активная сессия пользователя (None если визард не запущен)"""
    session = offer_sessions.get(user_id)
    if session is None or session.closed:
        return None
    return session


def _header(step: Step) -> str:
    return f"🧭 <b>Шаг {int(step)}/{TOTAL_STEPS}: {STEP_TITLES[step]}</b>\n\n"


def _trade_line(draft: TradeDraft) -> str:
    trade = "🟢 Покупка" if draft.trade_type == TradeType.BUY else "🔴 Продажа"
    wallet = offer_kb.WALLET_LABELS.get(draft.wallet_type.value, "") if draft.wallet_type else "—"
    return f"{trade} <b>{draft.currency_code or '—'}</b> · {wallet}"


def _errors_block(errors: List[str]) -> str:
    if not errors:
        return ""
    return "\n\n" + "\n".join(f"⚠️ {escape(err)}" for err in errors)


# ============================================================
# Списки для шагов 2-3 (с fallback на config)
# ============================================================

async def load_wallet_options(session: OfferSession) -> List[str]:
    try:
        options = await session.client.list_wallet_options()
    except P2PAPIError as e:
        logger.warning(f"Wallet options unavailable, using defaults: {e}")
        return list(config.SUPPORTED_WALLET_TYPES)

    ids = []
    for item in options:
        wallet = "ECO" if item.get("id") == "FUNDING" else item.get("id")
        if wallet in config.SUPPORTED_WALLET_TYPES and wallet not in ids:
            ids.append(wallet)
    return ids or list(config.SUPPORTED_WALLET_TYPES)


async def load_currencies(session: OfferSession) -> List[Dict[str, str]]:
    wallet = session.draft.wallet_type.value if session.draft.wallet_type else "SPOT"
    try:
        currencies = await session.client.list_currencies(wallet)
    except P2PAPIError as e:
        logger.warning(f"Currencies unavailable for {wallet}, using defaults: {e}")
        currencies = []

    if not currencies:
        currencies = [{"value": code, "label": code} for code in config.DEFAULT_CURRENCIES.get(wallet, [])]
    return currencies


# ============================================================
# Рендер шагов
# ============================================================

def render_amount_price(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    draft = session.draft
    price_config = draft.price_config
    code = draft.currency_code

    if price_config.market_price > 0:
        market = format_usd(price_config.market_price)
    elif session.prices.loading:
        market = "загрузка..."
    else:
        market = "недоступна"

    text = (
        _header(Step.AMOUNT_PRICE)
        + _trade_line(draft) + "\n\n"
        + f"📈 <b>Рыночная цена:</b> {market}\n"
        + f"🏷 <b>Цена:</b> {describe_price(price_config, code)}\n"
        + f"📦 <b>Количество:</b> {format_amount(draft.amount, code, draft.is_fiat)}\n"
        + f"💵 <b>Total:</b> {draft.total_value}\n"
        + f"↕️ <b>Лимиты:</b> ${format_limit(draft.amount_config.min)} – "
          f"${format_limit(draft.amount_config.max)} (USD)\n"
    )

    if draft.trade_type == TradeType.SELL:
        balance = draft.available_balance
        shown = format_amount(balance, code, draft.is_fiat) if balance is not None else "не получен"
        text += f"👛 <b>Доступно:</b> {shown}\n"

    if session.prices.last_error and price_config.market_price <= 0:
        text += f"\n❗️ Цена: {escape(session.prices.last_error)}"

    result = validate_amount_price(draft)
    text += _errors_block(result.errors)

    keyboard = offer_kb.get_amount_price_keyboard(
        draft,
        can_auto_adjust=result.can_auto_adjust,
        can_continue=result.is_valid,
    )
    return text, keyboard


def render_payment_methods(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    draft = session.draft
    selected = [m.name for m in draft.payment_methods]

    text = _header(Step.PAYMENT_METHODS) + "💳 Выбери способы оплаты (до {}):\n".format(config.MAX_PAYMENT_METHODS)
    if selected:
        text += "\n<b>Выбрано:</b> " + escape(", ".join(selected))
    if not session.payment_methods:
        text += "\n\n<i>Список методов пуст - добавь свой метод</i>"

    errors = validate_step(Step.PAYMENT_METHODS, draft).errors
    text += _errors_block(errors)

    keyboard = offer_kb.get_payment_methods_keyboard(
        session.payment_methods,
        [m.id for m in draft.payment_methods],
        can_continue=not errors,
    )
    return text, keyboard


def render_trade_settings(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    settings = session.draft.trade_settings

    auto_cancel = f"{settings.auto_cancel} мин" if settings.auto_cancel else "выключен"
    visibility = "🙈 скрытый" if settings.visibility == Visibility.PRIVATE else "👁 публичный"
    terms = escape(settings.terms_of_trade) if settings.terms_of_trade else "—"

    text = (
        _header(Step.TRADE_SETTINGS)
        + f"📝 <b>Условия:</b> {terms}\n"
        + f"🗒 <b>Заметки:</b> {escape(settings.additional_notes or '—')}\n"
        + f"⏱ <b>Auto-cancel:</b> {auto_cancel}\n"
        + f"👁 <b>Видимость:</b> {visibility}\n"
        + f"🪪 <b>KYC:</b> {'требуется' if settings.kyc_required else 'не требуется'}"
    )

    errors = validate_step(Step.TRADE_SETTINGS, session.draft).errors
    text += _errors_block(errors)

    return text, offer_kb.get_trade_settings_keyboard(settings, can_continue=not errors)


def render_location(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    location = session.draft.location_settings

    text = (
        _header(Step.LOCATION)
        + f"🌍 <b>Страна:</b> {location.country or '—'}\n"
        + f"🗺 <b>Регион:</b> {escape(location.region or '—')}\n"
        + f"🏙 <b>Город:</b> {escape(location.city or '—')}\n"
        + f"🚫 <b>Исключены:</b> {', '.join(location.restrictions) or 'нет'}"
    )

    errors = validate_step(Step.LOCATION, session.draft).errors
    text += _errors_block(errors)

    return text, offer_kb.get_location_keyboard(location, can_continue=not errors)


def render_requirements(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    reqs = session.draft.user_requirements

    text = (
        _header(Step.USER_REQUIREMENTS)
        + "Необязательно - можно пропустить.\n\n"
        + f"🔢 <b>Мин. сделок:</b> {reqs.min_completed_trades}\n"
        + f"📈 <b>Мин. success rate:</b> {format_limit(reqs.min_success_rate)}%\n"
        + f"📅 <b>Возраст аккаунта:</b> {reqs.min_account_age} дн.\n"
        + f"🤝 <b>Только доверенные:</b> {'да' if reqs.trusted_only else 'нет'}"
    )
    return text, offer_kb.get_requirements_keyboard(reqs)


def render_review(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    draft = session.draft
    code = draft.currency_code
    settings = draft.trade_settings
    location = draft.location_settings
    reqs = draft.user_requirements

    methods = ", ".join(m.name for m in draft.payment_methods) or "—"
    auto_cancel = f"{settings.auto_cancel} мин" if settings.auto_cancel else "выключен"

    text = (
        _header(Step.REVIEW)
        + _trade_line(draft) + "\n\n"
        + f"📦 <b>Количество:</b> {format_amount(draft.amount, code, draft.is_fiat)}\n"
        + f"🏷 <b>Цена:</b> {describe_price(draft.price_config, code)}\n"
        + f"💵 <b>Total:</b> {draft.total_value}\n"
        + f"↕️ <b>Лимиты:</b> ${format_limit(draft.amount_config.min)} – "
          f"${format_limit(draft.amount_config.max)}\n\n"
        + f"💳 <b>Оплата:</b> {escape(methods)}\n"
        + f"📝 <b>Условия:</b> {escape(settings.terms_of_trade)}\n"
        + f"⏱ <b>Auto-cancel:</b> {auto_cancel} · "
          f"{'🙈 скрытый' if settings.visibility == Visibility.PRIVATE else '👁 публичный'} · "
          f"KYC {'✅' if settings.kyc_required else '❌'}\n"
        + f"🌍 <b>Локация:</b> {location.country}"
        + (f", {escape(location.city)}" if location.city else "")
        + (f" (кроме {', '.join(location.restrictions)})" if location.restrictions else "")
        + "\n"
        + f"👤 <b>Требования:</b> ≥{reqs.min_completed_trades} сделок, "
          f"≥{format_limit(reqs.min_success_rate)}%, ≥{reqs.min_account_age} дн."
    )

    if session.pipeline.last_error:
        text += f"\n\n❌ <b>Ошибка публикации:</b> {escape(session.pipeline.last_error)}"

    can_complete = session.wizard.can_complete(session.pipeline.is_submitting)
    return text, offer_kb.get_review_keyboard(can_complete=can_complete)


async def render_step(session: OfferSession) -> Tuple[str, InlineKeyboardMarkup]:
    """Текст и клавиатура текущего шага"""
    step = session.current_step
    draft = session.draft
    can_continue = session.wizard.can_continue()

    if step == Step.TRADE_TYPE:
        selected = draft.trade_type.value if draft.trade_type else None
        return (
            _header(step) + "🔄 Ты хочешь купить или продать?",
            offer_kb.get_trade_type_keyboard(selected, can_continue),
        )

    if step == Step.WALLET_TYPE:
        options = await load_wallet_options(session)
        selected = draft.wallet_type.value if draft.wallet_type else None
        return (
            _header(step) + "👛 Из какого кошелька торгуем?",
            offer_kb.get_wallet_keyboard(options, selected, can_continue),
        )

    if step == Step.CURRENCY:
        currencies = await load_currencies(session)
        return (
            _header(step) + "💱 Выбери валюту:",
            offer_kb.get_currency_keyboard(currencies, draft.currency_code or None, can_continue),
        )

    if step == Step.AMOUNT_PRICE:
        return render_amount_price(session)
    if step == Step.PAYMENT_METHODS:
        return render_payment_methods(session)
    if step == Step.TRADE_SETTINGS:
        return render_trade_settings(session)
    if step == Step.LOCATION:
        return render_location(session)
    if step == Step.USER_REQUIREMENTS:
        return render_requirements(session)
    return render_review(session)


async def show_step(
    message: Message,
    session: OfferSession,
    state: FSMContext,
    edit: bool = True,
    notice: Optional[str] = None,
):
    """
    Показать текущий шаг и синхронизировать FSM state.

    Args:
        message: Сообщение визарда (edit) или сообщение пользователя (answer)
        edit: Редактировать сообщение вместо отправки нового
        notice: Строка над карточкой (результат последнего действия)
    """
    await state.set_state(STEP_STATES[session.current_step])

    text, keyboard = await render_step(session)
    if notice:
        text = f"{notice}\n\n{text}"

    if edit:
        await safe_edit_text(message, text, reply_markup=keyboard)
    else:
        await message.answer(text, reply_markup=keyboard)


async def ask_input(message: Message, state: FSMContext, input_state: State, field: str, prompt: str):
    """Перейти в режим ввода значения для поля"""
    await state.set_state(input_state)
    await state.update_data(input_field=field)
    await safe_edit_text(message, prompt, reply_markup=offer_kb.get_input_cancel_keyboard())
