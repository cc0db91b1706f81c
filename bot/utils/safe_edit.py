"""
Safe message editing utility.
Handles "message is not modified" and media messages.
"""
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import Message, InlineKeyboardMarkup
from typing import Optional


async def safe_edit_text(
    message: Message,
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
    **kwargs
) -> Message:
    """
    Безопасное редактирование сообщения.

    - Текст не изменился (повторный тап по той же кнопке) - оставляем как есть
    - Сообщение нельзя отредактировать (медиа, слишком старое) - отправляем новое

    Args:
        message: Сообщение для редактирования
        text: Новый текст
        reply_markup: Клавиатура
        **kwargs: Дополнительные параметры для edit_text/answer

    Returns:
        Отредактированное или новое сообщение
    """
    try:
        return await message.edit_text(text, reply_markup=reply_markup, **kwargs)
    except TelegramBadRequest as e:
        if "message is not modified" in str(e):
            return message
        return await message.answer(text, reply_markup=reply_markup, **kwargs)
