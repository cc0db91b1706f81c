import pytest

from services.p2p_client import P2PAPIError, P2PClient, WalletBalance, _clean_error_response, _wallet_pool


class RecordingClient(P2PClient):
    """P2PClient с подменённым транспортом"""

    def __init__(self, responses):
        super().__init__(api_url="http://p2p.test/", api_key="secret", timeout=5)
        self.responses = responses
        self.requests = []

    async def _request(self, method, path, params=None, payload=None):
        self.requests.append((method, path, params, payload))
        response = self.responses.get((method, path))
        if isinstance(response, Exception):
            raise response
        return response


def test_wallet_balance_available_excludes_orders():
    balance = WalletBalance.from_dict({"balance": "1.5", "inOrder": 0.5})
    assert balance.available == pytest.approx(1.0)


def test_wallet_balance_from_empty_response():
    assert WalletBalance.from_dict(None).available == 0


def test_clean_error_response():
    assert _clean_error_response(502, "<HTML><body>bad</body></HTML>") == "Bad Gateway (сервер недоступен)"
    assert _clean_error_response(418, "<html></html>") == "HTTP 418"
    assert _clean_error_response(400, "x" * 500) == "x" * 200


def test_eco_wallet_uses_funding_pool():
    assert _wallet_pool("ECO") == "FUNDING"
    assert _wallet_pool("SPOT") == "SPOT"


def test_headers_and_url():
    client = RecordingClient({})
    assert client.api_url == "http://p2p.test"
    assert client._get_headers()["X-API-Key"] == "secret"


@pytest.mark.asyncio
async def test_market_price():
    client = RecordingClient({("GET", "/api/finance/currency/price"): {"data": "101.5"}})

    assert await client.get_market_price("EUR", "FIAT") == 101.5
    assert client.requests[0][2] == {"currency": "EUR", "type": "FIAT"}


@pytest.mark.asyncio
async def test_invalid_market_price():
    client = RecordingClient({("GET", "/api/finance/currency/price"): {"data": "n/a"}})

    with pytest.raises(P2PAPIError):
        await client.get_market_price("EUR", "FIAT")


@pytest.mark.asyncio
async def test_wallet_balance_path_for_eco():
    client = RecordingClient({
        ("GET", "/api/finance/wallet/FUNDING/USDT"): {"balance": 100, "inOrder": 25},
    })

    balance = await client.get_wallet_balance("ECO", "USDT")

    assert balance.available == 75


@pytest.mark.asyncio
async def test_currencies_by_wallet_pool():
    client = RecordingClient({
        ("GET", "/api/finance/currency/valid"): {
            "FUNDING": [{"value": "USDT", "label": "Tether"}],
            "SPOT": [{"value": "BTC", "label": "Bitcoin"}],
        },
    })

    assert await client.list_currencies("ECO") == [{"value": "USDT", "label": "Tether"}]
    assert await client.list_currencies("FIAT") == []


@pytest.mark.asyncio
async def test_create_payment_method_defaults():
    client = RecordingClient({
        ("POST", "/api/p2p/payment-method"): {"paymentMethod": {"id": "pm-9", "name": "Wise"}},
    })

    method = await client.create_payment_method("Wise")

    assert method == {"id": "pm-9", "name": "Wise"}
    payload = client.requests[0][3]
    assert payload["description"] == "Custom payment method"
    assert payload["processingTime"] == "Varies"


@pytest.mark.asyncio
async def test_update_payment_method_needs_fields():
    client = RecordingClient({})

    with pytest.raises(ValueError):
        await client.update_payment_method("pm-9", name=None)


@pytest.mark.asyncio
async def test_health_check_reports_failure():
    client = RecordingClient({("GET", "/api/finance/wallet/options"): P2PAPIError("Request timeout (5s)")})
    assert await client.health_check() is False

    client.responses[("GET", "/api/finance/wallet/options")] = [{"id": "SPOT", "name": "Spot"}]
    assert await client.health_check() is True
