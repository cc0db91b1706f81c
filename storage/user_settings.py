import json
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass, asdict, fields, replace
import redis.asyncio as aioredis
import config

logger = logging.getLogger(__name__)


@dataclass
class UserSettings:
    """Настройки пользователя (префиллы визарда создания оффера)"""
    user_id: int

    # Offer defaults
    default_wallet_type: Optional[str] = None  # 'FIAT', 'SPOT', 'ECO' или None (спросить)
    default_terms: str = ""
    default_country: str = ""

    # Trade settings
    default_auto_cancel: int = config.DEFAULT_AUTO_CANCEL_MINUTES
    kyc_required: bool = config.DEFAULT_KYC_REQUIRED

    # Limits (USD)
    default_min_limit: float = config.DEFAULT_MIN_LIMIT_USD
    default_max_limit: float = config.DEFAULT_MAX_LIMIT_USD

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'UserSettings':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class UserSettingsStorage:
    """
    Хранилище настроек пользователей
    Поддерживает Redis или in-memory fallback
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url
        self.redis: Optional[aioredis.Redis] = None
        self.in_memory_storage: Dict[int, UserSettings] = {}
        self.use_redis = redis_url is not None

    async def connect(self):
        """Подключение к Redis"""
        if not self.use_redis:
            logger.info("Using in-memory storage for user settings")
            return

        try:
            self.redis = await aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self.redis.ping()
            logger.info("Connected to Redis for user settings")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Falling back to in-memory storage")
            self.use_redis = False
            self.redis = None

    async def close(self):
        """Закрытие соединения"""
        if self.redis:
            await self.redis.close()

    def _settings_key(self, user_id: int) -> str:
        """Ключ для настроек пользователя"""
        return f"p2p:user:{user_id}:settings"

    async def get_settings(self, user_id: int) -> UserSettings:
        """
        Получить настройки пользователя
        Если не существуют, создаёт дефолтные
        """
        if self.use_redis and self.redis:
            try:
                key = self._settings_key(user_id)
                data = await self.redis.get(key)

                if data:
                    settings_dict = json.loads(data)
                    return UserSettings.from_dict(settings_dict)

            except Exception as e:
                logger.error(f"Error getting settings from Redis: {e}")

        # Fallback to in-memory
        if user_id not in self.in_memory_storage:
            self.in_memory_storage[user_id] = UserSettings(user_id=user_id)

        return self.in_memory_storage[user_id]

    async def save_settings(self, settings: UserSettings):
        """Сохранить настройки пользователя"""
        user_id = settings.user_id

        if self.use_redis and self.redis:
            try:
                key = self._settings_key(user_id)
                data = json.dumps(settings.to_dict())
                await self.redis.set(key, data)
                logger.debug(f"Settings saved to Redis for user {user_id}")
                return
            except Exception as e:
                logger.error(f"Error saving settings to Redis: {e}")

        # Fallback to in-memory
        self.in_memory_storage[user_id] = settings
        logger.debug(f"Settings saved to memory for user {user_id}")

    async def update(self, user_id: int, **changes: Any) -> UserSettings:
        """
        Изменить префиллы одним сохранением.

        Неизвестное поле отклоняет весь набор: ничего не записывается.
        """
        editable = {f.name for f in fields(UserSettings)} - {"user_id"}
        unknown = sorted(set(changes) - editable)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")

        settings = await self.get_settings(user_id)
        settings = replace(settings, **changes)
        await self.save_settings(settings)
        return settings


def create_settings_storage() -> UserSettingsStorage:
    """Создать хранилище настроек"""

    # Redis URL
    redis_url = None
    if config.REDIS_HOST:
        redis_password_part = f":{config.REDIS_PASSWORD}@" if config.REDIS_PASSWORD else ""
        redis_url = f"redis://{redis_password_part}{config.REDIS_HOST}:{config.REDIS_PORT}/{config.REDIS_DB}"

    return UserSettingsStorage(redis_url)
