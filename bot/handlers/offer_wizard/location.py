"""
Offer Wizard - Шаг 7: Локация и ограничения по странам
"""
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext

from bot.states.offer_states import OfferStates
from services.p2p_offer import DraftPatchError, OfferSessionRegistry
from services.p2p_offer.draft_store import AddRestriction, RemoveRestriction, UpdateLocation
from .utils import SESSION_EXPIRED_TEXT, ask_input, get_session, show_step

router = Router()

PROMPTS = {
    "country": "🌍 Отправь код страны (ISO, например: <code>DE</code>, <code>US</code>):",
    "region": "🗺 Отправь регион (или «-» чтобы очистить):",
    "city": "🏙 Отправь город (или «-» чтобы очистить):",
    "restrict": "🚫 Отправь код страны, которую нужно исключить:",
}


@router.callback_query(OfferStates.location, F.data.in_({"oloc:country", "oloc:region", "oloc:city", "oloc:restrict"}))
async def location_field_selected(callback: CallbackQuery, state: FSMContext):
    """Запросить значение для поля локации"""
    field = callback.data.split(":")[1]
    await ask_input(callback.message, state, OfferStates.entering_location_text, field, PROMPTS[field])
    await callback.answer()


@router.callback_query(OfferStates.location, F.data.startswith("oloc:unr:"))
async def restriction_removed(callback: CallbackQuery, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Снять ограничение по стране"""
    session = get_session(offer_sessions, callback.from_user.id)
    if session is None:
        await callback.answer(SESSION_EXPIRED_TEXT, show_alert=True)
        return

    code = callback.data.split(":", 2)[2]
    session.apply(RemoveRestriction(code))
    await show_step(callback.message, session, state)
    await callback.answer()


@router.message(OfferStates.entering_location_text)
async def location_text_entered(message: Message, state: FSMContext, offer_sessions: OfferSessionRegistry):
    """Обработка страны / региона / города / ограничения"""
    session = get_session(offer_sessions, message.from_user.id)
    if session is None:
        await state.clear()
        await message.answer(SESSION_EXPIRED_TEXT)
        return

    data = await state.get_data()
    field = data.get("input_field")
    text = (message.text or "").strip()

    if field in ("country", "restrict"):
        if not (len(text) == 2 and text.isalpha()):
            await message.answer("❌ Нужен двухбуквенный код страны (например: DE). Попробуй ещё раз:")
            return
        patch = UpdateLocation(country=text) if field == "country" else AddRestriction(text)
    elif field == "region":
        patch = UpdateLocation(region="" if text == "-" else text)
    else:
        patch = UpdateLocation(city="" if text == "-" else text)

    try:
        session.apply(patch)
    except DraftPatchError as e:
        await message.answer(f"❌ {e}\n\nПопробуй ещё раз:")
        return

    await state.update_data(input_field=None)
    await show_step(message, session, state, edit=False)
