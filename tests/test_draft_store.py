import pytest

import config
from services.p2p_offer import (
    DraftPatchError,
    MarginType,
    PaymentMethod,
    PriceModel,
    TradeDraftStore,
    TradeType,
    WalletType,
    create_draft,
    reduce_draft,
    validate_amount_price,
)
from services.p2p_offer.draft_store import (
    AddRestriction,
    AutoAdjustAmount,
    DraftPatch,
    SelectPaymentMethod,
    SetAmount,
    SetAvailableBalance,
    SetCurrency,
    SetFixedPrice,
    SetMargin,
    SetMarketPrice,
    SetPriceModel,
    SetTotal,
    SetTradeType,
    SetWalletType,
    UpdateLocation,
    UpdateTradeSettings,
    UpdateUserRequirements,
)
from conftest import apply_all


def test_new_draft_defaults():
    draft = create_draft(min_limit=10, max_limit=20, auto_cancel=30, kyc_required=False,
                         terms_of_trade="Be nice", country="us")

    assert draft.amount_config.min == 10
    assert draft.amount_config.max == 20
    assert draft.trade_settings.auto_cancel == 30
    assert draft.trade_settings.kyc_required is False
    assert draft.trade_settings.terms_of_trade == "Be nice"
    assert draft.location_settings.country == "US"
    assert draft.price_config.model == PriceModel.FIXED
    assert draft.total_value == "0.00"


def test_amount_updates_total_value(btc_draft):
    draft = btc_draft(amount=0.01)
    assert draft.total_value == "500.00"
    assert draft.amount_source == "amount"


def test_total_is_source_of_truth_across_price_ticks(btc_draft):
    draft = reduce_draft(btc_draft(), SetTotal(1000))
    assert draft.amount == pytest.approx(0.02)
    assert draft.amount_source == "total"

    draft = reduce_draft(draft, SetMarketPrice(40000))
    assert draft.amount == pytest.approx(0.025)


def test_editing_amount_after_total_switches_source(btc_draft):
    draft = apply_all(btc_draft(), SetTotal(1000), SetAmount(0.05))

    assert draft.amount == 0.05
    assert draft.amount_source == "amount"
    assert draft.total_input is None


def test_total_without_price_is_rejected(btc_draft):
    with pytest.raises(DraftPatchError):
        reduce_draft(btc_draft(market_price=0), SetTotal(1000))


def test_negative_amount_is_rejected(btc_draft):
    with pytest.raises(DraftPatchError):
        reduce_draft(btc_draft(), SetAmount(-1))


def test_margin_direction_follows_trade_type(btc_draft):
    margin = config.DEFAULT_MARGIN_VALUE
    draft = reduce_draft(btc_draft(trade_type=TradeType.SELL), SetPriceModel(PriceModel.MARGIN))

    assert draft.price_config.margin_type == MarginType.PERCENTAGE
    assert draft.price_config.final_price == pytest.approx(50000 * (1 - margin / 100))

    draft = reduce_draft(draft, SetTradeType(TradeType.BUY))
    assert draft.price_config.final_price == pytest.approx(50000 * (1 + margin / 100))


def test_fixed_margin_type(btc_draft):
    draft = apply_all(
        btc_draft(),
        SetPriceModel(PriceModel.MARGIN),
        SetMargin(value=500, margin_type=MarginType.FIXED),
    )
    assert draft.price_config.final_price == pytest.approx(50500)


def test_switching_to_fixed_keeps_current_price(btc_draft):
    draft = reduce_draft(btc_draft(), SetPriceModel(PriceModel.FIXED))
    assert draft.price_config.value == 50000
    assert draft.price_config.final_price == 50000

    draft = apply_all(draft, SetFixedPrice(45000), SetMarketPrice(60000))
    assert draft.price_config.final_price == 45000
    assert draft.price_config.market_price == 60000


def test_price_edits_need_matching_model(btc_draft):
    with pytest.raises(DraftPatchError):
        reduce_draft(btc_draft(), SetFixedPrice(1))
    with pytest.raises(DraftPatchError):
        reduce_draft(btc_draft(), SetMargin(value=1))


def test_auto_adjust_lifts_amount_above_minimum(btc_draft):
    draft = btc_draft(amount=0.001)
    assert validate_amount_price(draft).below_minimum

    draft = reduce_draft(draft, AutoAdjustAmount())

    assert draft.amount == pytest.approx(0.0021)
    assert validate_amount_price(draft).is_valid


def test_auto_adjust_without_price_is_noop(btc_draft):
    draft = btc_draft(market_price=0, amount=0.001)
    assert reduce_draft(draft, AutoAdjustAmount()) == draft


def test_balance_only_kept_for_sell(btc_draft):
    buy = reduce_draft(btc_draft(), SetAvailableBalance(1.0))
    assert buy.available_balance is None

    sell = reduce_draft(btc_draft(trade_type=TradeType.SELL), SetAvailableBalance(1.0))
    assert sell.available_balance == 1.0
    assert sell.amount_config.available_balance == 1.0


def test_wallet_change_drops_balance(btc_draft):
    draft = reduce_draft(btc_draft(trade_type=TradeType.SELL), SetAvailableBalance(1.0))

    assert reduce_draft(draft, SetWalletType(WalletType.SPOT)).available_balance == 1.0
    assert reduce_draft(draft, SetWalletType(WalletType.ECO)).available_balance is None


def test_currency_change_replaces_balance(btc_draft):
    draft = reduce_draft(btc_draft(trade_type=TradeType.SELL), SetAvailableBalance(1.0))
    draft = reduce_draft(draft, SetCurrency("ETH"))

    assert draft.currency_code == "ETH"
    assert draft.available_balance is None


def test_currency_change_drops_market_price(btc_draft):
    draft = reduce_draft(btc_draft(amount=0.01), SetCurrency("ETH"))

    assert draft.price_config.market_price == 0
    assert draft.price_config.final_price == 0
    assert draft.total_value == "0.00"
    assert not validate_amount_price(draft).is_valid


def test_wallet_change_drops_market_price(btc_draft):
    draft = reduce_draft(btc_draft(amount=0.01), SetWalletType(WalletType.ECO))

    assert draft.price_config.final_price == 0
    assert not validate_amount_price(draft).is_valid


def test_same_currency_and_wallet_keep_market_price(btc_draft):
    draft = apply_all(btc_draft(amount=0.01), SetCurrency("BTC"), SetWalletType(WalletType.SPOT))

    assert draft.price_config.final_price == 50000
    assert draft.total_value == "500.00"


def test_currency_change_keeps_fixed_price(btc_draft):
    draft = apply_all(btc_draft(amount=0.01), SetPriceModel(PriceModel.FIXED, 45000), SetCurrency("ETH"))

    assert draft.price_config.market_price == 0
    assert draft.price_config.final_price == 45000


def test_switching_back_to_market_uses_latest_tick(btc_draft):
    draft = apply_all(
        btc_draft(),
        SetPriceModel(PriceModel.FIXED, 45000),
        SetMarketPrice(42000),
        SetPriceModel(PriceModel.MARKET),
    )

    assert draft.price_config.value == 42000
    assert draft.price_config.final_price == 42000


def test_payment_method_selection(bank_transfer):
    draft = reduce_draft(create_draft(), SelectPaymentMethod(bank_transfer))
    assert reduce_draft(draft, SelectPaymentMethod(bank_transfer)) == draft

    for i in range(config.MAX_PAYMENT_METHODS - 1):
        draft = reduce_draft(draft, SelectPaymentMethod(PaymentMethod(id=f"m{i}", name=f"M{i}")))

    with pytest.raises(DraftPatchError):
        reduce_draft(draft, SelectPaymentMethod(PaymentMethod(id="extra", name="Extra")))


def test_restrictions():
    draft = apply_all(create_draft(), UpdateLocation(country="de"), AddRestriction("fr"), AddRestriction("FR"))
    assert draft.location_settings.restrictions == ("FR",)

    with pytest.raises(DraftPatchError):
        reduce_draft(draft, AddRestriction("DE"))

    # Выбор страны снимает её из ограничений
    draft = reduce_draft(draft, UpdateLocation(country="FR"))
    assert draft.location_settings.restrictions == ()


def test_trade_settings_notes_can_be_cleared():
    draft = reduce_draft(create_draft(), UpdateTradeSettings(additional_notes=" Call first "))
    assert draft.trade_settings.additional_notes == "Call first"

    draft = reduce_draft(draft, UpdateTradeSettings(additional_notes=""))
    assert draft.trade_settings.additional_notes is None


def test_success_rate_bounds():
    with pytest.raises(DraftPatchError):
        reduce_draft(create_draft(), UpdateUserRequirements(min_success_rate=150))


def test_same_patch_twice_is_idempotent(btc_draft):
    patch = SetAmount(0.01)
    once = reduce_draft(btc_draft(), patch)
    assert reduce_draft(once, patch) == once


def test_unknown_patch_type():
    class Unknown(DraftPatch):
        pass

    with pytest.raises(TypeError):
        reduce_draft(create_draft(), Unknown())


def test_store_dispatch_many_is_atomic():
    store = TradeDraftStore(create_draft())
    store.dispatch(SetAmount(1))

    with pytest.raises(DraftPatchError):
        store.dispatch_many([SetAmount(2), SetAmount(-1)])

    assert store.draft.amount == 1
    assert len(store.history) == 1


def test_store_reset_restores_initial_draft():
    initial = create_draft(country="US")
    store = TradeDraftStore(initial)
    store.dispatch(SetAmount(3))

    store.reset()

    assert store.draft == initial
    assert store.history == []
