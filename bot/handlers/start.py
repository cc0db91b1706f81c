from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message
from bot.keyboards.main_menu import get_main_menu

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message):
    """Обработчик команды /start"""

    welcome_text = """
🤝 <b>P2P Offer Bot</b>

Привет! Я помогу создать P2P оффер на покупку или продажу валюты.

<b>Как это работает:</b>
1️⃣ Выбери тип сделки, кошелёк и валюту
2️⃣ Укажи количество, цену (фиксированная, рыночная или с маржой) и лимиты в USD
3️⃣ Выбери способы оплаты и условия сделки
4️⃣ Укажи локацию и требования к контрагенту
5️⃣ Проверь карточку и опубликуй

<b>⚠️ Важно:</b>
• Лимиты сделки всегда в USD, независимо от валюты оффера
• Для продажи нужен достаточный свободный баланс кошелька

Используй меню ниже для начала работы 👇
"""

    await message.answer(
        welcome_text,
        reply_markup=get_main_menu()
    )
