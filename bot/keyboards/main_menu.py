from aiogram.types import ReplyKeyboardMarkup, KeyboardButton


def get_main_menu() -> ReplyKeyboardMarkup:
    """
    Главное меню бота (Reply Keyboard)

    Кнопки:
    - ➕ Создать оффер
    - ⚙️ Настройки
    """
    keyboard_buttons = [
        [
            KeyboardButton(text="➕ Создать оффер"),
        ],
        [
            KeyboardButton(text="⚙️ Настройки"),
        ],
    ]

    keyboard = ReplyKeyboardMarkup(
        keyboard=keyboard_buttons,
        resize_keyboard=True,
        input_field_placeholder="Выберите действие..."
    )
    return keyboard
