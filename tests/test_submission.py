import asyncio
import json

import pytest

from services.p2p_client import P2PAPIError
from services.p2p_offer import (
    SubmissionPipeline,
    SubmissionStatus,
    TradeType,
    build_offer_payload,
    create_draft,
    reduce_draft,
)
from services.p2p_offer.draft_store import DeselectPaymentMethod, SetAvailableBalance, SetTradeType


class FakeCreateOffer:
    def __init__(self, error=None):
        self.error = error
        self.payloads = []
        self.gate = None

    async def __call__(self, payload):
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return {"id": "offer-1", "status": "PENDING"}


def test_payload_shape(complete_draft):
    payload = build_offer_payload(complete_draft)

    assert payload["type"] == "BUY"
    assert payload["currency"] == "BTC"
    assert payload["walletType"] == "SPOT"
    assert payload["paymentMethodIds"] == ["pm-1"]

    assert json.loads(payload["amountConfig"]) == {"total": 0.01, "min": 100.0, "max": 5000.0}
    price = json.loads(payload["priceConfig"])
    assert price["model"] == "MARKET"
    assert price["finalPrice"] == 50000
    assert json.loads(payload["tradeSettings"])["termsOfTrade"] == "Pay within 15 minutes"
    assert json.loads(payload["locationSettings"]) == {"country": "DE", "restrictions": []}
    assert json.loads(payload["paymentMethods"]) == [{"id": "pm-1", "name": "Bank transfer", "details": {}}]
    assert json.loads(payload["userRequirements"])["trustedOnly"] is False


def test_payload_needs_core_fields():
    with pytest.raises(ValueError):
        build_offer_payload(create_draft())


@pytest.mark.asyncio
async def test_successful_submission(complete_draft):
    created = []
    create_offer = FakeCreateOffer()
    pipeline = SubmissionPipeline(create_offer, on_success=created.append)

    result = await pipeline.submit(complete_draft)

    assert result.success
    assert result.offer["id"] == "offer-1"
    assert pipeline.status == SubmissionStatus.DONE
    assert pipeline.last_offer == result.offer
    assert created == [result.offer]
    assert len(create_offer.payloads) == 1


@pytest.mark.asyncio
async def test_duplicate_submit_is_ignored(complete_draft):
    create_offer = FakeCreateOffer()
    create_offer.gate = asyncio.Event()
    pipeline = SubmissionPipeline(create_offer)

    first = asyncio.create_task(pipeline.submit(complete_draft))
    await asyncio.sleep(0)

    assert pipeline.is_submitting
    assert await pipeline.submit(complete_draft) is None

    create_offer.gate.set()
    result = await first

    assert result.success
    assert len(create_offer.payloads) == 1


@pytest.mark.asyncio
async def test_failure_returns_to_idle_and_allows_retry(complete_draft):
    errors = []
    create_offer = FakeCreateOffer(error=P2PAPIError("API error 500: boom", status=500))
    pipeline = SubmissionPipeline(create_offer, on_error=errors.append)

    result = await pipeline.submit(complete_draft)

    assert result.status == SubmissionStatus.FAILED
    assert result.error == "API error 500: boom"
    assert pipeline.status == SubmissionStatus.IDLE
    assert pipeline.last_error == "API error 500: boom"
    assert errors == ["API error 500: boom"]

    create_offer.error = None
    retry = await pipeline.submit(complete_draft)
    assert retry.success
    assert pipeline.last_error is None


@pytest.mark.asyncio
async def test_invalid_draft_is_not_sent(complete_draft):
    create_offer = FakeCreateOffer()
    pipeline = SubmissionPipeline(create_offer)

    draft = reduce_draft(complete_draft, DeselectPaymentMethod("pm-1"))
    result = await pipeline.submit(draft)

    assert result.error == "At least one payment method is required"
    assert create_offer.payloads == []


@pytest.mark.asyncio
async def test_sell_balance_rechecked_before_sending(complete_draft):
    create_offer = FakeCreateOffer()
    requested = []

    async def fetch_balance(wallet_type, currency):
        requested.append((wallet_type, currency))
        return 0.005

    pipeline = SubmissionPipeline(create_offer, fetch_balance=fetch_balance)
    draft = reduce_draft(complete_draft, SetTradeType(TradeType.SELL))

    result = await pipeline.submit(draft)

    assert requested == [("SPOT", "BTC")]
    assert result.error == "Amount exceeds available balance of 0.005 BTC"
    assert create_offer.payloads == []


@pytest.mark.asyncio
async def test_sell_with_enough_balance_is_sent(complete_draft):
    create_offer = FakeCreateOffer()

    async def fetch_balance(wallet_type, currency):
        return 1.0

    pipeline = SubmissionPipeline(create_offer, fetch_balance=fetch_balance)
    draft = reduce_draft(reduce_draft(complete_draft, SetTradeType(TradeType.SELL)), SetAvailableBalance(1.0))

    result = await pipeline.submit(draft)

    assert result.success
    assert json.loads(create_offer.payloads[0]["amountConfig"])["availableBalance"] == 1.0


@pytest.mark.asyncio
async def test_balance_fetch_error_fails_submission(complete_draft):
    async def fetch_balance(wallet_type, currency):
        raise P2PAPIError("Request timeout (15s)")

    pipeline = SubmissionPipeline(FakeCreateOffer(), fetch_balance=fetch_balance)
    draft = reduce_draft(complete_draft, SetTradeType(TradeType.SELL))

    result = await pipeline.submit(draft)

    assert result.status == SubmissionStatus.FAILED
    assert result.error == "Request timeout (15s)"
    assert not pipeline.is_submitting
