from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import Update
from loguru import logger
import config


class OwnerCheckMiddleware(BaseMiddleware):
    """
    Middleware для проверки Owner-only режима.

    Если OWNER_TELEGRAM_ID установлен (не 0), то создавать офферы может только owner.
    Апдейты от других пользователей не доходят до хендлеров.
    """

    def __init__(self, owner_id: int = None):
        self.owner_id = config.OWNER_TELEGRAM_ID if owner_id is None else owner_id

    @staticmethod
    def _extract_user(event: Update):
        for source in (event.message, event.callback_query, event.inline_query):
            if source is not None and source.from_user is not None:
                return source.from_user
        return None

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any]
    ) -> Any:
        # Owner mode выключен
        if self.owner_id == 0:
            return await handler(event, data)

        user = self._extract_user(event)
        if user is None:
            return

        if user.id != self.owner_id:
            logger.warning(
                f"🔒 Access denied for user {user.id} (@{user.username or 'unknown'}). "
                f"Owner-only mode enabled."
            )

            if event.message:
                await event.message.answer(
                    "🔒 Этот бот работает в owner-only режиме.\n"
                    "Доступ запрещён."
                )
            elif event.callback_query:
                await event.callback_query.answer("🔒 Доступ запрещён", show_alert=True)

            return

        return await handler(event, data)
