import pytest

from services.p2p_offer import AmountConverter, classify_currency


@pytest.fixture()
def btc():
    return AmountConverter(classify_currency("BTC"), final_price=50000, min_limit=100, max_limit=5000)


@pytest.fixture()
def eur():
    return AmountConverter(classify_currency("EUR"), final_price=2, min_limit=100, max_limit=5000)


def test_crypto_limits_are_converted(btc):
    assert btc.min_amount == pytest.approx(0.002)
    assert btc.max_amount == pytest.approx(0.1)


def test_crypto_total_value(btc):
    assert btc.total_value(0.01) == pytest.approx(500)
    assert btc.limit_value(0.01) == pytest.approx(500)
    assert btc.format_total_value(0.01) == "500.00"


def test_crypto_minimum_has_buffer(btc):
    assert btc.calculate_minimum_amount() == pytest.approx(0.0021)


def test_amount_total_round_trip(btc):
    assert btc.amount_to_total(0.02) == pytest.approx(1000)
    assert btc.total_to_amount(1000) == pytest.approx(0.02)


@pytest.mark.parametrize("price", [0.00001234, 1, 50000, 1e9])
def test_amount_total_round_trip_across_prices(price):
    converter = AmountConverter(classify_currency("BTC"), final_price=price, min_limit=100, max_limit=5000)

    total = converter.amount_to_total(0.5)

    assert total == pytest.approx(0.5 * price)
    assert converter.total_to_amount(total) == pytest.approx(0.5)


def test_fiat_limits_apply_directly(eur):
    assert eur.min_amount == 100
    assert eur.max_amount == 5000
    assert eur.limit_value(150) == 150


def test_fiat_total_value_divides_by_price(eur):
    assert eur.total_value(100) == pytest.approx(50)


def test_fiat_minimum_multiplies_by_price(eur):
    assert eur.calculate_minimum_amount() == pytest.approx(210)


def test_no_price_makes_derived_values_unavailable():
    converter = AmountConverter(classify_currency("BTC"), final_price=0, min_limit=100, max_limit=5000)

    assert converter.min_amount is None
    assert converter.total_value(1) is None
    assert converter.limit_value(1) is None
    assert converter.total_to_amount(100) is None
    assert converter.calculate_minimum_amount() is None
    assert converter.format_total_value(1) == "0.00"
    assert not converter.is_below_minimum(0)


def test_boundary_uses_epsilon(btc):
    # 0.002 * 0.0001 = 2e-7
    assert not btc.is_below_minimum(0.0019999)
    assert btc.is_below_minimum(0.00199)
    assert not btc.is_above_maximum(0.10000001)
    assert btc.is_above_maximum(0.1001)
