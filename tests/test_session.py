import pytest

from services.p2p_client import P2PAPIError, WalletBalance
from services.p2p_offer import OfferSession, OfferSessionRegistry, PriceKey, Step, TradeType, WalletType
from services.p2p_offer.draft_store import (
    SelectPaymentMethod,
    SetAmount,
    SetCurrency,
    SetPriceModel,
    SetTradeType,
    SetWalletType,
    UpdateLocation,
    UpdateTradeSettings,
)
from services.p2p_offer.models import PriceModel
from storage.user_settings import UserSettings


class FakeClient:
    def __init__(self, price=50000.0, balance=None, offer_error=None, price_error=None):
        self.price = price
        self.price_error = price_error
        self.balance = balance if balance is not None else WalletBalance(balance=1.0, in_order=0.2)
        self.offer_error = offer_error
        self.methods = [
            {"id": "sys-1", "name": "Bank transfer", "available": True},
            {"id": "sys-2", "name": "Cash", "available": 1},
        ]
        self.price_calls = []
        self.offers = []
        self.deleted = []

    async def get_market_price(self, currency, wallet_type):
        self.price_calls.append((currency, wallet_type))
        if self.price_error is not None:
            raise self.price_error
        return self.price

    async def get_wallet_balance(self, wallet_type, currency):
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance

    async def list_payment_methods(self):
        return list(self.methods)

    async def create_payment_method(self, name, description=None, instructions=None):
        return {"id": "custom-1", "name": name, "userId": 7}

    async def update_payment_method(self, method_id, **fields):
        return {"id": method_id, **fields}

    async def delete_payment_method(self, method_id):
        self.deleted.append(method_id)

    async def create_offer(self, payload):
        if self.offer_error is not None:
            raise self.offer_error
        self.offers.append(payload)
        return {"id": "offer-1"}


async def walk_to_amount_step(session, trade_type=TradeType.BUY):
    session.apply(SetTradeType(trade_type))
    assert await session.next()
    session.apply(SetWalletType(WalletType.SPOT))
    assert await session.next()
    session.apply(SetCurrency("BTC"))
    assert await session.next()
    assert session.current_step == Step.AMOUNT_PRICE


async def walk_to_review(session):
    await walk_to_amount_step(session)
    session.apply(SetPriceModel(PriceModel.MARKET), SetAmount(0.01))
    assert await session.next()

    session.apply(SelectPaymentMethod(session.payment_methods[0]))
    assert await session.next()
    session.apply(UpdateTradeSettings(terms_of_trade="Pay within 15 minutes"))
    assert await session.next()
    session.apply(UpdateLocation(country="de"))
    assert await session.next()
    assert await session.next()
    assert session.current_step == Step.REVIEW


@pytest.mark.asyncio
async def test_cannot_continue_without_trade_type():
    session = OfferSession(FakeClient(), price_interval=3600)
    assert not await session.next()
    assert session.current_step == Step.TRADE_TYPE


@pytest.mark.asyncio
async def test_amount_step_starts_price_polling():
    client = FakeClient()
    session = OfferSession(client, price_interval=3600)

    await walk_to_amount_step(session)

    assert client.price_calls == [("BTC", "SPOT")]
    assert session.prices.is_running
    assert session.draft.price_config.market_price == 50000

    await session.back()
    assert session.current_step == Step.CURRENCY
    assert not session.prices.is_running
    await session.close()


@pytest.mark.asyncio
async def test_sell_prefills_amount_from_balance():
    session = OfferSession(FakeClient(), price_interval=3600)

    await walk_to_amount_step(session, TradeType.SELL)

    assert session.draft.available_balance == pytest.approx(0.8)
    assert session.draft.amount == pytest.approx(0.08)
    await session.close()


@pytest.mark.asyncio
async def test_balance_error_leaves_balance_unknown():
    session = OfferSession(FakeClient(balance=P2PAPIError("API error 503: Service Unavailable")), price_interval=3600)

    await walk_to_amount_step(session, TradeType.SELL)

    assert session.draft.available_balance is None
    assert session.draft.amount == 0
    await session.close()


@pytest.mark.asyncio
async def test_price_for_other_key_is_ignored():
    session = OfferSession(FakeClient(), price_interval=3600)
    await walk_to_amount_step(session)

    session._on_price(PriceKey("ETH", "SPOT"), 3000)

    assert session.draft.price_config.market_price == 50000
    await session.close()


@pytest.mark.asyncio
async def test_full_walkthrough_publishes_offer():
    client = FakeClient()
    session = OfferSession(client, price_interval=3600)

    await walk_to_review(session)
    assert [m.id for m in session.payment_methods] == ["sys-1", "sys-2"]

    assert not await session.next()

    assert session.last_result.success
    assert len(client.offers) == 1
    assert client.offers[0]["paymentMethodIds"] == ["sys-1"]
    assert session.closed
    assert not session.prices.is_running


@pytest.mark.asyncio
async def test_failed_publish_keeps_draft_and_step():
    client = FakeClient(offer_error=P2PAPIError("API error 400: Invalid offer", status=400))
    session = OfferSession(client, price_interval=3600)

    await walk_to_review(session)
    await session.next()

    assert session.last_result.error == "API error 400: Invalid offer"
    assert session.current_step == Step.REVIEW
    assert session.draft.amount == 0.01
    assert not session.closed
    await session.close()


@pytest.mark.asyncio
async def test_forward_jump_skipping_incomplete_steps_is_refused():
    session = OfferSession(FakeClient(), price_interval=3600)
    session.apply(SetTradeType(TradeType.BUY))

    assert await session.go_to(2)
    assert not await session.go_to(4)


@pytest.mark.asyncio
async def test_custom_payment_methods():
    client = FakeClient()
    session = OfferSession(client, price_interval=3600)
    await session.load_payment_methods()

    method = await session.add_custom_method("Revolut")
    assert method.is_custom
    assert [m.id for m in session.draft.payment_methods] == ["custom-1"]

    renamed = await session.rename_custom_method("custom-1", "Revolut EUR")
    assert renamed.name == "Revolut EUR"
    assert session.draft.payment_methods[0].name == "Revolut EUR"

    await session.delete_custom_method("custom-1")
    assert client.deleted == ["custom-1"]
    assert session.draft.payment_methods == ()

    with pytest.raises(ValueError):
        await session.delete_custom_method("sys-1")


@pytest.mark.asyncio
async def test_settings_prefill_draft():
    settings = UserSettings(
        user_id=1,
        default_wallet_type="ECO",
        default_terms="Only SEPA",
        default_country="nl",
        default_auto_cancel=30,
        kyc_required=False,
    )

    session = OfferSession(FakeClient(), settings, price_interval=3600)

    assert session.draft.wallet_type == WalletType.ECO
    assert session.draft.trade_settings.terms_of_trade == "Only SEPA"
    assert session.draft.trade_settings.auto_cancel == 30
    assert session.draft.trade_settings.kyc_required is False
    assert session.draft.location_settings.country == "NL"


@pytest.mark.asyncio
async def test_registry_keeps_one_session_per_user():
    registry = OfferSessionRegistry(FakeClient(), price_interval=3600)

    first = await registry.start(1)
    second = await registry.start(1)
    await registry.start(2)

    assert first.closed
    assert registry.get(1) is second
    assert len(registry) == 2

    await registry.close_all()
    assert len(registry) == 0
    assert registry.get(2) is None


@pytest.mark.asyncio
async def test_currency_change_does_not_keep_old_price():
    client = FakeClient()
    session = OfferSession(client, price_interval=3600)
    await walk_to_review(session)

    assert await session.go_to(Step.CURRENCY)
    client.price_error = P2PAPIError("API error 503: Service Unavailable")
    session.apply(SetCurrency("ETH"))

    assert session.draft.price_config.final_price == 0
    assert not await session.go_to(Step.REVIEW)

    assert await session.next()
    assert session.current_step == Step.AMOUNT_PRICE
    assert session.draft.price_config.market_price == 0
    assert not await session.next()

    result = await session.submit()
    assert not result.success
    assert result.error == "Price must be greater than 0"
    assert client.offers == []
    await session.close()
