import pytest

from services.p2p_offer import CryptoCurrency, FiatCurrency, classify_currency, is_fiat_currency_code


@pytest.mark.parametrize("code", ["USD", "eur", " gbp "])
def test_iso_codes_are_fiat(code):
    currency = classify_currency(code)
    assert isinstance(currency, FiatCurrency)
    assert currency.is_fiat
    assert currency.code == code.strip().upper()


@pytest.mark.parametrize("code", ["BTC", "usdt", "SOL"])
def test_other_codes_are_crypto(code):
    currency = classify_currency(code)
    assert isinstance(currency, CryptoCurrency)
    assert not currency.is_fiat


def test_empty_code_is_rejected():
    with pytest.raises(ValueError):
        classify_currency("  ")


def test_is_fiat_currency_code():
    assert is_fiat_currency_code("eur")
    assert not is_fiat_currency_code("USDT")
    assert not is_fiat_currency_code("")


def test_currency_str_is_code():
    assert str(classify_currency("btc")) == "BTC"
