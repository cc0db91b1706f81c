import sys
from pathlib import Path

import pytest

# Корень проекта в sys.path, чтобы тесты импортировали config/services/storage
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services.p2p_offer import PaymentMethod, PriceModel, TradeType, WalletType, create_draft, reduce_draft  # noqa: E402
from services.p2p_offer.draft_store import (  # noqa: E402
    SelectPaymentMethod,
    SetAmount,
    SetCurrency,
    SetMarketPrice,
    SetPriceModel,
    SetTradeType,
    SetWalletType,
    UpdateLocation,
    UpdateTradeSettings,
)


def apply_all(draft, *patches):
    for patch in patches:
        draft = reduce_draft(draft, patch)
    return draft


@pytest.fixture()
def bank_transfer():
    return PaymentMethod(id="pm-1", name="Bank transfer")


@pytest.fixture()
def btc_draft():
    """BUY BTC на SPOT по рынку 50000, лимиты 100-5000 USD, amount не задан"""

    def build(trade_type=TradeType.BUY, market_price=50000.0, amount=None, min_limit=100.0, max_limit=5000.0):
        draft = create_draft(min_limit=min_limit, max_limit=max_limit, auto_cancel=60, kyc_required=True)
        draft = apply_all(
            draft,
            SetTradeType(trade_type),
            SetWalletType(WalletType.SPOT),
            SetCurrency("BTC"),
            SetMarketPrice(market_price),
            SetPriceModel(PriceModel.MARKET),
        )
        if amount is not None:
            draft = reduce_draft(draft, SetAmount(amount))
        return draft

    return build


@pytest.fixture()
def complete_draft(btc_draft, bank_transfer):
    """Черновик, проходящий все шаги 1-8"""
    return apply_all(
        btc_draft(amount=0.01),
        SelectPaymentMethod(bank_transfer),
        UpdateTradeSettings(terms_of_trade="Pay within 15 minutes"),
        UpdateLocation(country="de"),
    )
