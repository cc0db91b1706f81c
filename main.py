import asyncio
import sys
import logging
from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.fsm.storage.memory import MemoryStorage
from loguru import logger

import config
from bot.handlers import start, menu, settings
from bot.handlers import offer_wizard
from bot.middlewares.owner_check import OwnerCheckMiddleware
from storage.user_settings import create_settings_storage
from services.p2p_client import get_p2p_client
from services.p2p_offer import OfferSessionRegistry


class InterceptHandler(logging.Handler):
    """Перехватчик для интеграции стандартного logging с loguru"""
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Находим caller frame
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Sinks loguru + перехват стандартного logging (aiogram, движок визарда)"""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=config.LOG_LEVEL
    )
    logger.add(
        "bot.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        level=config.LOG_LEVEL,
        rotation="10 MB",
        retention="7 days",
        compression="zip"
    )
    logger.add(
        "errors.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="ERROR",
        rotation="5 MB",
        retention="30 days",
        compression="zip",
        backtrace=True,
        diagnose=True
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


async def main():
    """Главная функция запуска бота"""

    # ===== КРИТИЧНО: Валидация конфигурации перед запуском =====
    try:
        config.validate_config()
    except RuntimeError as e:
        logger.error(str(e))
        return

    bot = Bot(
        token=config.TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )

    dp = Dispatcher(storage=MemoryStorage())

    # Хранилище префиллов (Redis или in-memory fallback)
    logger.info("Initializing storage...")
    settings_storage = create_settings_storage()
    await settings_storage.connect()

    # P2P API
    logger.info("Initializing P2P API client...")
    p2p_client = get_p2p_client()
    if await p2p_client.health_check():
        logger.info("🤝 P2P API connected")
    else:
        logger.warning("⚠️ P2P API not available, wizard will show errors on data loading")

    # Сессии визарда (черновик + поллер цены + пайплайн отправки на пользователя)
    offer_sessions = OfferSessionRegistry(p2p_client)

    dp.workflow_data.update({
        'settings_storage': settings_storage,
        'p2p_client': p2p_client,
        'offer_sessions': offer_sessions,
    })

    if config.OWNER_TELEGRAM_ID > 0:
        logger.info(f"🔒 Owner-only mode enabled for user ID: {config.OWNER_TELEGRAM_ID}")
        dp.update.middleware(OwnerCheckMiddleware())

    logger.info("Registering handlers...")
    dp.include_router(start.router)
    dp.include_router(menu.router)
    dp.include_router(settings.router)
    dp.include_router(offer_wizard.router)

    logger.info("Starting bot...")
    logger.info(f"P2P API: {config.P2P_API_URL}")
    logger.info(f"Supported wallets: {', '.join(config.SUPPORTED_WALLET_TYPES)}")

    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        logger.info("Shutting down...")
        await offer_sessions.close_all()
        await settings_storage.close()
        await bot.session.close()


if __name__ == '__main__':
    setup_logging()
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped")
