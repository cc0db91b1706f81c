import asyncio

import pytest

from services.p2p_offer import MarketPriceSource, PriceKey

BTC = PriceKey("BTC", "SPOT")
ETH = PriceKey("ETH", "SPOT")


class FakeFetcher:
    """Цены по ключу; Exception в значении - ошибка запроса"""

    def __init__(self, prices):
        self.prices = prices
        self.calls = []

    async def __call__(self, currency, wallet_type):
        self.calls.append((currency, wallet_type))
        value = self.prices[(currency, wallet_type)]
        if isinstance(value, Exception):
            raise value
        return value


class GatedFetcher:
    """Ответ придерживается, пока тест не откроет gate"""

    def __init__(self, price):
        self.price = price
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def __call__(self, currency, wallet_type):
        self.entered.set()
        await self.gate.wait()
        return self.price


@pytest.mark.asyncio
async def test_start_fetches_first_price():
    updates = []
    fetcher = FakeFetcher({("BTC", "SPOT"): 50000})
    source = MarketPriceSource(fetcher, interval=3600, on_update=lambda key, price: updates.append((key, price)))

    handle = await source.start(BTC)

    assert source.price == 50000
    assert not source.loading
    assert source.last_updated is not None
    assert updates == [(BTC, 50000.0)]
    assert handle.is_active

    await source.stop()
    assert not handle.is_active


@pytest.mark.asyncio
async def test_same_key_reuses_running_poll():
    fetcher = FakeFetcher({("BTC", "SPOT"): 50000})
    source = MarketPriceSource(fetcher, interval=3600)

    first = await source.start(BTC)
    second = await source.start(BTC)

    assert first is second
    assert len(fetcher.calls) == 1
    await source.stop()


@pytest.mark.asyncio
async def test_key_change_stops_old_poll():
    fetcher = FakeFetcher({("BTC", "SPOT"): 50000, ("ETH", "SPOT"): 3000})
    source = MarketPriceSource(fetcher, interval=3600)

    old = await source.start(BTC)
    new = await source.start(ETH)

    assert not old.is_active
    assert new.is_active
    assert source.key == ETH
    assert source.price == 3000
    await source.stop()


@pytest.mark.asyncio
async def test_error_is_reported_without_retry():
    fetcher = FakeFetcher({("BTC", "SPOT"): RuntimeError("feed down")})
    source = MarketPriceSource(fetcher, interval=3600)

    await source.start(BTC)

    assert source.price == 0
    assert source.last_error == "feed down"
    assert not source.loading
    assert len(fetcher.calls) == 1
    await source.stop()


@pytest.mark.asyncio
async def test_non_positive_price_is_not_published():
    updates = []
    fetcher = FakeFetcher({("BTC", "SPOT"): 0})
    source = MarketPriceSource(fetcher, interval=3600, on_update=lambda key, price: updates.append(price))

    await source.start(BTC)

    assert source.price == 0
    assert source.last_error == "Market price is not available"
    assert updates == []
    await source.stop()


@pytest.mark.asyncio
async def test_response_for_stopped_poll_is_discarded():
    updates = []
    fetcher = GatedFetcher(50000)
    source = MarketPriceSource(fetcher, interval=3600, on_update=lambda key, price: updates.append(price))

    start = asyncio.create_task(source.start(BTC))
    await fetcher.entered.wait()

    await source.stop()
    fetcher.gate.set()
    handle = await start

    assert source.price == 0
    assert updates == []
    assert not handle.is_active


@pytest.mark.asyncio
async def test_polls_on_schedule():
    fetcher = FakeFetcher({("BTC", "SPOT"): 50000})
    source = MarketPriceSource(fetcher, interval=0.01)

    await source.start(BTC)
    await asyncio.sleep(0.1)
    await source.stop()

    assert len(fetcher.calls) >= 2
    calls = len(fetcher.calls)
    await asyncio.sleep(0.05)
    assert len(fetcher.calls) == calls

