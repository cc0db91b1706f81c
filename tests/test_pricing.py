import pytest

from services.p2p_offer import (
    MarginType,
    PriceConfig,
    PriceModel,
    TradeType,
    calculate_final_price,
    describe_price,
    reprice,
)


def test_fixed_price_ignores_market():
    assert calculate_final_price(PriceModel.FIXED, market_price=100, fixed_value=123.5) == 123.5


def test_market_price_follows_market():
    assert calculate_final_price(PriceModel.MARKET, market_price=101.25) == 101.25


@pytest.mark.parametrize("trade_type, expected", [
    (TradeType.BUY, 110.0),
    (TradeType.SELL, 90.0),
])
def test_percentage_margin(trade_type, expected):
    price = calculate_final_price(
        PriceModel.MARGIN,
        market_price=100,
        margin_value=10,
        margin_type=MarginType.PERCENTAGE,
        trade_type=trade_type,
    )
    assert price == pytest.approx(expected)


@pytest.mark.parametrize("trade_type, expected", [
    (TradeType.BUY, 105.0),
    (TradeType.SELL, 95.0),
])
def test_fixed_margin(trade_type, expected):
    price = calculate_final_price(
        PriceModel.MARGIN,
        market_price=100,
        margin_value=5,
        margin_type=MarginType.FIXED,
        trade_type=trade_type,
    )
    assert price == pytest.approx(expected)


def test_negative_result_is_not_clamped():
    price = calculate_final_price(
        PriceModel.MARGIN,
        market_price=100,
        margin_value=150,
        margin_type=MarginType.PERCENTAGE,
        trade_type=TradeType.SELL,
    )
    assert price == pytest.approx(-50.0)


def test_missing_market_price_gives_zero():
    assert calculate_final_price(PriceModel.MARKET, market_price=None) == 0.0


def test_reprice_uses_value_as_margin():
    config = PriceConfig(model=PriceModel.MARGIN, value=2, market_price=50000, margin_type=MarginType.PERCENTAGE)
    assert reprice(config, TradeType.SELL).final_price == pytest.approx(49000)
    assert reprice(config, TradeType.BUY).final_price == pytest.approx(51000)


def test_describe_price():
    config = PriceConfig(model=PriceModel.MARGIN, value=2, market_price=100, final_price=102,
                         margin_type=MarginType.PERCENTAGE)
    assert describe_price(config, "BTC") == "Margin +2%: 102.00 USD per BTC"
