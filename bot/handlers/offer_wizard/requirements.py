"""
Offer Wizard - Шаг 8: Требования к контрагенту (необязательно)
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext

from bot.states.offer_states import OfferStates
from services.p2p_offer import DraftPatchError, OfferSessionRegistry
from services.p2p_offer.draft_store import UpdateUserRequirements
from utils.validators import parse_number
from .utils import SESSION_EXPIRED_TEXT, ask_input, get_session, show_step

router = Router()

PROMPTS = {
    "trades": "🔢 Минимум завершённых сделок у контрагента:",
    "rate": "📈 Минимальный success rate (0-100%):",
    "age": "📅 Минимальный возраст аккаунта (дни):",
}


@router.callback_query(OfferStates.requirements, F.data == "oreq:trusted")
async def trusted_toggled(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    trusted = session.draft.user_requirements.trusted_only
    session.apply(UpdateUserRequirements(trusted_only=not trusted))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.callback_query(OfferStates.requirements, F.data.in_({"oreq:trades", "oreq:rate", "oreq:age"}))
async def requirement_selected(callback: CallbackQuery, state: FSMContext):
    field = callback.data.split(":")[1]
    await ask_input(callback.message, state, OfferStates.entering_requirement, field, PROMPTS[field])
    await callback.answer()


@router.message(OfferStates.entering_requirement)
async def requirement_entered(message: Message, state: FSMContext, offer_sessions: OfferSessionRegistry):
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

    if field == "rate":
        patch = UpdateUserRequirements(min_success_rate=value)
    elif not value.is_integer():
        await message.answer("❌ Нужно целое число. Попробуй ещё раз:")
        return
    elif field == "trades":
        patch = UpdateUserRequirements(min_completed_trades=int(value))
    else:
        patch = UpdateUserRequirements(min_account_age=int(value))

    try:
        session.apply(patch)
    except DraftPatchError as e:
        await message.answer(f"❌ {e}\n\nПопробуй ещё раз:")
        return

    await state.update_data(input_field=None)
    await show_step(message, session, state, edit=False)
