"""
Market Price Source - опрос рыночной цены для (currency, walletType)

Паттерн как у мониторов:
- start(key) / stop() lifecycle
- _poll_loop() с обработкой ошибок, без retry/backoff
- Смена ключа детерминированно останавливает старый опрос

Защита от гонок: каждый start() увеличивает generation. Ответ опроса,
пришедший для устаревшего поколения, никогда не пишет состояние.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceKey:
    """Ключ опроса: валюта + тип кошелька"""
    currency: str
    wallet_type: str

    def __str__(self) -> str:
        return f"{self.currency}/{self.wallet_type}"


PriceFetcher = Callable[[str, str], Awaitable[float]]
PriceCallback = Callable[[PriceKey, float], None]


class PollHandle:
    """Отменяемый handle одного опроса (одного ключа)"""

    def __init__(self, source: 'MarketPriceSource', key: PriceKey, generation: int):
        self._source = source
        self.key = key
        self.generation = generation

    @property
    def is_active(self) -> bool:
        return self._source.is_current(self.generation)

    async def stop(self):
        """Остановить опрос, если он ещё текущий"""
        if self.is_active:
            await self._source.stop()


class MarketPriceSource:
    """
    Источник рыночной цены.

    Args:
        fetch_price: async (currency, wallet_type) -> price
        interval: Интервал опроса в секундах
        on_update: Callback на каждую свежую цену (применяется атомарно)
    """

    def __init__(
        self,
        fetch_price: PriceFetcher,
        interval: int = config.MARKET_PRICE_POLL_INTERVAL,
        on_update: Optional[PriceCallback] = None,
    ):
        self._fetch_price = fetch_price
        self.interval = interval
        self._on_update = on_update

        self.key: Optional[PriceKey] = None
        self.price: float = 0.0
        self.loading: bool = False
        self.last_updated: Optional[datetime] = None
        self.last_error: Optional[str] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._handle: Optional[PollHandle] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current(self, generation: int) -> bool:
        return generation == self._generation and self.is_running

    async def start(self, key: PriceKey) -> PollHandle:
        """
        Запустить опрос для ключа.

        Тот же ключ при активном опросе - возвращает текущий handle.
        Новый ключ - останавливает старый опрос и сбрасывает цену.
        Первая цена запрашивается до возврата.
        """
        if self.is_running and self.key == key and self._handle is not None:
            return self._handle

        await self.stop()

        self._generation += 1
        self.key = key
        self.price = 0.0
        self.last_updated = None
        self.last_error = None
        self.loading = True

        generation = self._generation
        self._task = asyncio.create_task(self._poll_loop(key, generation))
        handle = PollHandle(self, key, generation)
        self._handle = handle

        logger.info(f"Market price polling started for {key} (interval: {self.interval}s)")

        # Первый опрос сразу, дальше по расписанию
        await self._poll_once(key, generation)
        return handle

    async def stop(self):
        """Остановить опрос. Любой незавершённый ответ становится устаревшим"""
        self._generation += 1
        task, self._task = self._task, None
        self._handle = None
        self.loading = False

        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info(f"Market price polling stopped for {self.key}")

    async def _poll_loop(self, key: PriceKey, generation: int):
        """Основной цикл опроса"""
        while generation == self._generation:
            await asyncio.sleep(self.interval)
            await self._poll_once(key, generation)

    async def _poll_once(self, key: PriceKey, generation: int):
        try:
            price = float(await self._fetch_price(key.currency, key.wallet_type))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Без retry: ошибка показывается один раз, следующий тик по расписанию
            if generation == self._generation:
                self.loading = False
                self.last_error = str(e)
            logger.error(f"Error fetching market price for {key}: {e}")
            return

        if generation != self._generation:
            logger.debug(f"Discarding stale price {price} for superseded key {key}")
            return

        self.loading = False

        if price <= 0:
            self.last_error = "Market price is not available"
            logger.warning(f"Non-positive market price for {key}: {price}")
            return

        self.price = price
        self.last_updated = datetime.utcnow()
        self.last_error = None

        if self._on_update is not None:
            self._on_update(key, price)
