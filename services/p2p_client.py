"""
P2P Exchange API Client

Клиент для P2P биржи: рыночная цена, балансы кошельков,
платёжные методы и создание офферов.
"""
import asyncio
import aiohttp
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from loguru import logger

import config


class P2PAPIError(Exception):
    """Ошибка при работе с P2P API"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class WalletBalance:
    """Баланс кошелька пользователя"""
    balance: float = 0.0
    in_order: float = 0.0

    @property
    def available(self) -> float:
        """Свободный баланс (без средств в ордерах)"""
        return self.balance - self.in_order

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'WalletBalance':
        if not data:
            return cls()
        return cls(
            balance=float(data.get("balance") or 0),
            in_order=float(data.get("inOrder") or 0),
        )


def _clean_error_response(status_code: int, error_text: str) -> str:
    """Очистить HTML из ответа сервера для читаемости"""
    if "<html" in error_text.lower():
        if status_code == 504:
            return "Gateway Timeout"
        elif status_code == 502:
            return "Bad Gateway (сервер недоступен)"
        elif status_code == 503:
            return "Service Unavailable"
        else:
            return f"HTTP {status_code}"
    return error_text[:200]  # Ограничить длину


def _wallet_pool(wallet_type: str) -> str:
    """ECO кошелёк хранится в funding пуле"""
    return "FUNDING" if wallet_type == "ECO" else wallet_type


class P2PClient:
    """
    Клиент для работы с P2P API

    Endpoints:
    - GET /api/finance/currency/price - рыночная цена валюты в USD
    - GET /api/finance/wallet/{type}/{currency} - баланс кошелька
    - GET /api/finance/wallet/options - доступные типы кошельков
    - GET /api/finance/currency/valid - валюты по типам кошельков
    - GET|POST|PUT|DELETE /api/p2p/payment-method - платёжные методы
    - POST /api/p2p/offer - создать оффер
    """

    def __init__(self, api_url: str = None, api_key: str = None, timeout: int = None):
        """
        Args:
            api_url: URL P2P API (default: из config)
            api_key: API ключ для аутентификации (default: из config)
            timeout: Таймаут запросов в секундах (default: из config)
        """
        self.api_url = (api_url or config.P2P_API_URL).rstrip("/")
        self.api_key = api_key or config.P2P_API_KEY
        self.timeout = timeout or config.P2P_API_TIMEOUT

        logger.info(f"P2PClient initialized: {self.api_url}")

    def _get_headers(self) -> Dict[str, str]:
        """Получить headers для запроса"""
        headers = {"Content-Type": "application/json"}

        if self.api_key:
            headers["X-API-Key"] = self.api_key

        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Выполнить запрос к API

        Raises:
            P2PAPIError: HTTP ошибка, таймаут или сетевой сбой
        """
        url = f"{self.api_url}{path}"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    url,
                    params=params,
                    json=payload,
                    headers=self._get_headers(),
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:

                    if response.status not in (200, 201):
                        error_text = await response.text()
                        clean_error = _clean_error_response(response.status, error_text)
                        raise P2PAPIError(
                            f"API error {response.status}: {clean_error}",
                            status=response.status,
                        )

                    if response.content_length == 0:
                        return None

                    return await response.json(content_type=None)

        except P2PAPIError:
            raise  # Не оборачивать повторно

        except asyncio.TimeoutError:
            logger.error(f"Timeout after {self.timeout}s: {method} {path}")
            raise P2PAPIError(f"Request timeout ({self.timeout}s)")

        except aiohttp.ClientError as e:
            logger.error(f"Network error on {method} {path}: {e}")
            raise P2PAPIError(f"Failed to connect to P2P API: {e}")

        except Exception as e:
            logger.error(f"Unexpected error ({type(e).__name__}): {e}", exc_info=True)
            raise P2PAPIError(f"Unexpected error ({type(e).__name__}): {e}")

    # ============================================================
    # MARKET / WALLETS
    # ============================================================

    async def get_market_price(self, currency: str, wallet_type: str) -> float:
        """
        Рыночная цена 1 единицы валюты в USD

        Args:
            currency: Код валюты (BTC, EUR, ...)
            wallet_type: FIAT / SPOT / ECO

        Returns:
            Цена (0.0 если биржа не знает цену)
        """
        data = await self._request(
            "GET",
            "/api/finance/currency/price",
            params={"currency": currency, "type": wallet_type},
        )

        price = data.get("data") if isinstance(data, dict) else data
        try:
            return float(price or 0)
        except (TypeError, ValueError):
            raise P2PAPIError(f"Invalid price in response: {price!r}")

    async def get_wallet_balance(self, wallet_type: str, currency: str) -> WalletBalance:
        """
        Баланс кошелька (balance + inOrder)

        Returns:
            WalletBalance; свободный баланс - .available
        """
        data = await self._request(
            "GET", f"/api/finance/wallet/{_wallet_pool(wallet_type)}/{currency}"
        )
        balance = WalletBalance.from_dict(data)
        logger.debug(
            f"Wallet {wallet_type}/{currency}: balance={balance.balance}, in_order={balance.in_order}"
        )
        return balance

    async def list_wallet_options(self) -> List[Dict[str, str]]:
        """Доступные типы кошельков: [{"id": "SPOT", "name": "Spot"}, ...]"""
        data = await self._request("GET", "/api/finance/wallet/options")
        return data or []

    async def list_currencies(self, wallet_type: str) -> List[Dict[str, str]]:
        """
        Валюты для типа кошелька: [{"value": "BTC", "label": "Bitcoin"}, ...]
        """
        data = await self._request("GET", "/api/finance/currency/valid")
        if not isinstance(data, dict):
            return []
        return data.get(_wallet_pool(wallet_type)) or []

    # ============================================================
    # PAYMENT METHODS
    # ============================================================

    async def list_payment_methods(self) -> List[Dict[str, Any]]:
        """Системные + кастомные платёжные методы пользователя"""
        data = await self._request("GET", "/api/p2p/payment-method")
        if isinstance(data, dict):
            data = data.get("data") or data.get("items") or []
        return data or []

    async def create_payment_method(
        self,
        name: str,
        description: Optional[str] = None,
        processing_time: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Создать кастомный платёжный метод"""
        payload = {
            "name": name,
            "description": description or "Custom payment method",
            "processingTime": processing_time or "Varies",
            "instructions": instructions or "",
            "available": True,
        }

        logger.info(f"Creating custom payment method: {name}")
        data = await self._request("POST", "/api/p2p/payment-method", payload=payload)
        return data.get("paymentMethod", data) if isinstance(data, dict) else data

    async def update_payment_method(self, method_id: str, **fields: Any) -> Dict[str, Any]:
        """Обновить кастомный платёжный метод (name, description, instructions, ...)"""
        payload = {k: v for k, v in fields.items() if v is not None}
        if not payload:
            raise ValueError("Nothing to update")

        logger.info(f"Updating payment method {method_id}: {list(payload)}")
        data = await self._request("PUT", f"/api/p2p/payment-method/{method_id}", payload=payload)
        return data.get("paymentMethod", data) if isinstance(data, dict) else data

    async def delete_payment_method(self, method_id: str):
        """Удалить кастомный платёжный метод"""
        logger.info(f"Deleting payment method {method_id}")
        await self._request("DELETE", f"/api/p2p/payment-method/{method_id}")

    # ============================================================
    # OFFERS
    # ============================================================

    async def create_offer(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Создать P2P оффер

        Args:
            payload: Готовый payload (см. submission.build_offer_payload)

        Returns:
            Ответ API (созданный оффер)
        """
        logger.info(
            f"Creating offer: {payload.get('type')} {payload.get('currency')} "
            f"({payload.get('walletType')})"
        )
        data = await self._request("POST", "/api/p2p/offer", payload=payload)
        return data or {}

    async def health_check(self) -> bool:
        """
        Проверить доступность P2P API

        Returns:
            bool: True если API доступен
        """
        try:
            await self.list_wallet_options()
            return True
        except Exception as e:
            logger.warning(f"P2P API health check failed: {e}")
            return False


# Singleton instance
_p2p_client = None


def get_p2p_client() -> P2PClient:
    """Получить singleton instance P2P клиента"""
    global _p2p_client

    if _p2p_client is None:
        _p2p_client = P2PClient()

    return _p2p_client
