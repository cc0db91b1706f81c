"""
Submission Pipeline - отправка оффера

idle -> submitting -> done | failed

- Повторный submit во время отправки игнорируется (без дубля запроса)
- Ошибка сообщается, пайплайн возвращается в idle, черновик не трогается
- Для SELL баланс перепроверяется прямо перед отправкой
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from utils.validators import format_limit
from .models import Step, TradeDraft, TradeType
from .validation import validate_step

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SubmissionResult:
    status: SubmissionStatus
    offer: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == SubmissionStatus.DONE


def _encode(data: Dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


def build_offer_payload(draft: TradeDraft) -> Dict[str, Any]:
    """
    Payload для POST /api/p2p/offer.

    Вложенные секции кодируются в JSON-строки, платёжные методы
    дополнительно передаются списком id.
    """
    if draft.trade_type is None or draft.wallet_type is None or draft.currency is None:
        raise ValueError("Draft is missing trade type, wallet type or currency")

    return {
        "type": draft.trade_type.value,
        "currency": draft.currency_code,
        "walletType": draft.wallet_type.value,
        "amountConfig": _encode(draft.amount_config.to_api()),
        "priceConfig": _encode(draft.price_config.to_api()),
        "tradeSettings": _encode(draft.trade_settings.to_api()),
        "locationSettings": _encode(draft.location_settings.to_api()),
        "userRequirements": _encode(draft.user_requirements.to_api()),
        "paymentMethods": _encode([m.to_api() for m in draft.payment_methods]),
        "paymentMethodIds": [m.id for m in draft.payment_methods],
    }


BalanceFetcher = Callable[[str, str], Awaitable[float]]


class SubmissionPipeline:
    """
    Отправка черновика в CreateOffer.

    Args:
        create_offer: async (payload) -> dict созданного оффера
        fetch_balance: async (wallet_type, currency) -> свободный баланс (для SELL)
        on_success: Callback после успешного создания (навигация к списку офферов)
        on_error: Callback с текстом ошибки
    """

    def __init__(
        self,
        create_offer: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]],
        fetch_balance: Optional[BalanceFetcher] = None,
        on_success: Optional[Callable[[Dict[str, Any]], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
    ):
        self._create_offer = create_offer
        self._fetch_balance = fetch_balance
        self._on_success = on_success
        self._on_error = on_error

        self.status = SubmissionStatus.IDLE
        self.last_error: Optional[str] = None
        self.last_offer: Optional[Dict[str, Any]] = None

    @property
    def is_submitting(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTING

    def reset(self):
        self.status = SubmissionStatus.IDLE
        self.last_error = None
        self.last_offer = None

    async def submit(self, draft: TradeDraft) -> Optional[SubmissionResult]:
        """
        Отправить черновик.

        Returns:
            SubmissionResult, либо None если отправка уже идёт
        """
        if self.status == SubmissionStatus.SUBMITTING:
            logger.warning("Submission already in flight, ignoring duplicate submit")
            return None

        # Флаг ставится до первого await - второй вызов увидит его
        self.status = SubmissionStatus.SUBMITTING
        self.last_error = None

        try:
            error = self._check_draft(draft)
            if error is None:
                error = await self._recheck_balance(draft)
            if error is not None:
                return await self._fail(error)

            payload = build_offer_payload(draft)
            offer = await self._create_offer(payload)

        except asyncio.CancelledError:
            self.status = SubmissionStatus.IDLE
            raise
        except Exception as e:
            logger.error(f"Offer submission failed: {e}")
            return await self._fail(str(e) or type(e).__name__)

        self.status = SubmissionStatus.DONE
        self.last_offer = offer
        logger.info(f"Offer created: {offer.get('id') if isinstance(offer, dict) else offer}")

        if self._on_success is not None:
            await _maybe_await(self._on_success(offer))

        return SubmissionResult(status=SubmissionStatus.DONE, offer=offer)

    def _check_draft(self, draft: TradeDraft) -> Optional[str]:
        """Первое нарушение по шагам 1-8, если есть"""
        for step in Step:
            if step == Step.REVIEW:
                continue
            result = validate_step(step, draft)
            if not result.is_valid:
                return result.errors[0]
        return None

    async def _recheck_balance(self, draft: TradeDraft) -> Optional[str]:
        if draft.trade_type != TradeType.SELL or self._fetch_balance is None:
            return None

        available = await self._fetch_balance(draft.wallet_type.value, draft.currency_code)
        if draft.amount > available:
            return (
                f"Amount exceeds available balance of {format_limit(available)} "
                f"{draft.currency_code}"
            )
        return None

    async def _fail(self, error: str) -> SubmissionResult:
        # failed - транзитное состояние, пайплайн сразу готов к повтору
        self.status = SubmissionStatus.IDLE
        self.last_error = error

        if self._on_error is not None:
            await _maybe_await(self._on_error(error))

        return SubmissionResult(status=SubmissionStatus.FAILED, error=error)


async def _maybe_await(value: Any):
    if asyncio.iscoroutine(value):
        await value
