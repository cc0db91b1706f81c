"""
Offer Session - один проход визарда для одного пользователя

Связывает:
- TradeDraftStore (черновик)
- WizardStateMachine (шаги)
- MarketPriceSource (опрос цены на шаге Amount & Price)
- SubmissionPipeline (отправка)

Каждый асинхронный источник пишет только свои поля черновика:
цена -> price_config.market_price, баланс -> available_balance.
"""
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import config
from services.p2p_client import P2PAPIError, P2PClient
from utils.validators import round_amount
from .draft_store import (
    DeselectPaymentMethod,
    DraftPatch,
    SelectPaymentMethod,
    SetAmount,
    SetAvailableBalance,
    SetMarketPrice,
    SetWalletType,
    TradeDraftStore,
    create_draft,
    reduce_draft,
)
from .models import PaymentMethod, Step, TradeDraft, TradeType, WalletType
from .price_source import MarketPriceSource, PriceKey
from .submission import SubmissionPipeline, SubmissionResult
from .validation import ValidationResult, validate_step
from .wizard import WizardStateMachine

logger = logging.getLogger(__name__)


class OfferSession:
    """
    Сессия создания оффера.

    Args:
        client: P2P API клиент
        settings: Снимок настроек пользователя (префиллы), только для чтения
        price_interval: Интервал опроса цены в секундах
    """

    def __init__(
        self,
        client: P2PClient,
        settings: Optional[Any] = None,
        price_interval: int = config.MARKET_PRICE_POLL_INTERVAL,
    ):
        self.client = client
        self.settings = settings

        self.store = TradeDraftStore(self._initial_draft(settings))
        self.wizard = WizardStateMachine(on_submit=self.submit)
        self.prices = MarketPriceSource(
            client.get_market_price,
            interval=price_interval,
            on_update=self._on_price,
        )
        self.pipeline = SubmissionPipeline(
            client.create_offer,
            fetch_balance=self._fetch_available_balance,
            on_success=self._on_submitted,
        )

        self.payment_methods: List[PaymentMethod] = []
        self.last_result: Optional[SubmissionResult] = None
        self.closed = False

    @staticmethod
    def _initial_draft(settings: Optional[Any]) -> TradeDraft:
        if settings is None:
            return create_draft()
        draft = create_draft(
            min_limit=settings.default_min_limit,
            max_limit=settings.default_max_limit,
            auto_cancel=settings.default_auto_cancel,
            kyc_required=settings.kyc_required,
            terms_of_trade=settings.default_terms,
            country=settings.default_country,
        )
        if settings.default_wallet_type in WalletType.__members__:
            draft = reduce_draft(draft, SetWalletType(WalletType(settings.default_wallet_type)))
        return draft

    @property
    def draft(self) -> TradeDraft:
        return self.store.draft

    @property
    def current_step(self) -> Step:
        return Step(self.wizard.current_step)

    # ============================================================
    # Изменение черновика
    # ============================================================

    def apply(self, *patches: DraftPatch) -> TradeDraft:
        """
        Применить patch'и и перепроверить шаги.

        Raises:
            DraftPatchError: Некорректный ввод (черновик не меняется)
        """
        self.store.dispatch_many(patches)
        self.revalidate()
        return self.draft

    def revalidate(self) -> Dict[Step, ValidationResult]:
        """Перепроверить шаги 1-8 и синхронизировать отметки о завершении"""
        results = {}
        for step in Step:
            if step == Step.REVIEW:
                continue
            result = validate_step(step, self.draft)
            self.wizard.sync_step(step, result.is_valid)
            results[step] = result
        return results

    def validate_current(self) -> ValidationResult:
        return validate_step(self.current_step, self.draft)

    # ============================================================
    # Навигация
    # ============================================================

    async def enter_step(self, step: Step):
        """Загрузки при входе на шаг (по одному разу на вход)"""
        if step == Step.AMOUNT_PRICE:
            await self._enter_amount_price()
        else:
            await self.prices.stop()

        if step == Step.PAYMENT_METHODS and not self.payment_methods:
            await self.load_payment_methods()

        if step == Step.REVIEW:
            self.wizard.mark_step_complete(Step.REVIEW)

    async def next(self) -> bool:
        """Continue / Complete"""
        self.revalidate()
        moved = await self.wizard.next_step()
        if moved:
            await self.enter_step(self.current_step)
        return moved

    async def back(self) -> bool:
        moved = self.wizard.prev_step()
        if moved:
            await self.enter_step(self.current_step)
        return moved

    async def go_to(self, step: int) -> bool:
        self.revalidate()
        moved = self.wizard.go_to_step(step)
        if moved:
            await self.enter_step(self.current_step)
        return moved

    async def _enter_amount_price(self):
        draft = self.draft
        if draft.currency is None or draft.wallet_type is None:
            return

        key = PriceKey(draft.currency_code, draft.wallet_type.value)
        await self.prices.start(key)

        if draft.trade_type == TradeType.SELL:
            await self.load_balance()
            self._prefill_sell_amount()

    def _prefill_sell_amount(self):
        draft = self.draft
        balance = draft.available_balance
        if draft.amount > 0 or not balance or balance <= 0:
            return
        amount = round_amount(balance * config.SELL_PREFILL_RATIO)
        logger.debug(f"Prefilling SELL amount with {amount} {draft.currency_code}")
        self.apply(SetAmount(amount))

    # ============================================================
    # Внешние данные
    # ============================================================

    async def load_balance(self) -> Optional[float]:
        """
        Загрузить свободный баланс для SELL.

        Ошибка не блокирует визард: баланс остаётся неизвестным
        и перепроверяется при отправке.
        """
        draft = self.draft
        if draft.trade_type != TradeType.SELL or draft.currency is None or draft.wallet_type is None:
            return None

        try:
            balance = await self.client.get_wallet_balance(draft.wallet_type.value, draft.currency_code)
        except P2PAPIError as e:
            logger.warning(f"Balance fetch failed for {draft.currency_code}: {e}")
            return None

        # Пользователь мог сменить валюту, пока шёл запрос
        if self.draft.currency_code != draft.currency_code:
            return None

        self.apply(SetAvailableBalance(balance.available))
        return balance.available

    async def load_payment_methods(self) -> List[PaymentMethod]:
        try:
            raw = await self.client.list_payment_methods()
        except P2PAPIError as e:
            logger.warning(f"Payment methods fetch failed: {e}")
            return self.payment_methods

        self.payment_methods = [PaymentMethod.from_api(item) for item in raw]
        return self.payment_methods

    def find_payment_method(self, method_id: str) -> Optional[PaymentMethod]:
        for method in self.payment_methods:
            if method.id == method_id:
                return method
        return None

    async def add_custom_method(
        self,
        name: str,
        description: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> PaymentMethod:
        """
        Создать кастомный метод и сразу выбрать его.

        Raises:
            P2PAPIError: API отклонил создание
            DraftPatchError: Достигнут лимит выбранных методов
        """
        name = name.strip()
        if not name:
            raise ValueError("Payment method name is required")

        data = await self.client.create_payment_method(
            name, description=description, instructions=instructions
        )
        method = PaymentMethod.from_api({**data, "isCustom": True})
        self.payment_methods.append(method)
        self.apply(SelectPaymentMethod(method))
        return method

    async def rename_custom_method(self, method_id: str, name: str) -> PaymentMethod:
        method = self._custom_method(method_id)
        name = name.strip()
        if not name:
            raise ValueError("Payment method name is required")

        await self.client.update_payment_method(method_id, name=name)
        updated = replace(method, name=name)
        self.payment_methods = [updated if m.id == method_id else m for m in self.payment_methods]

        if any(m.id == method_id for m in self.draft.payment_methods):
            self.apply(DeselectPaymentMethod(method_id), SelectPaymentMethod(updated))
        return updated

    async def delete_custom_method(self, method_id: str):
        self._custom_method(method_id)
        await self.client.delete_payment_method(method_id)
        self.payment_methods = [m for m in self.payment_methods if m.id != method_id]
        self.apply(DeselectPaymentMethod(method_id))

    def _custom_method(self, method_id: str) -> PaymentMethod:
        method = self.find_payment_method(method_id)
        if method is None:
            raise ValueError(f"Unknown payment method: {method_id}")
        if not method.is_custom:
            raise ValueError("Only custom payment methods can be modified")
        return method

    def _on_price(self, key: PriceKey, price: float):
        draft = self.draft
        if draft.wallet_type is None or key != PriceKey(draft.currency_code, draft.wallet_type.value):
            logger.debug(f"Ignoring price for {key}: draft moved on")
            return
        self.apply(SetMarketPrice(price))

    async def _fetch_available_balance(self, wallet_type: str, currency: str) -> float:
        balance = await self.client.get_wallet_balance(wallet_type, currency)
        return balance.available

    # ============================================================
    # Отправка
    # ============================================================

    async def submit(self) -> Optional[SubmissionResult]:
        result = await self.pipeline.submit(self.draft)
        if result is not None:
            self.last_result = result
        return result

    async def _on_submitted(self, offer: Dict[str, Any]):
        await self.prices.stop()
        self.store.reset()
        self.wizard.reset()
        self.closed = True

    async def close(self):
        """Отмена визарда: остановить опрос, выбросить черновик"""
        await self.prices.stop()
        self.store.reset()
        self.wizard.reset()
        self.closed = True


class OfferSessionRegistry:
    """Активные сессии визарда по user_id (одна на пользователя)"""

    def __init__(self, client: P2PClient, price_interval: int = config.MARKET_PRICE_POLL_INTERVAL):
        self.client = client
        self.price_interval = price_interval
        self._sessions: Dict[int, OfferSession] = {}

    def get(self, user_id: int) -> Optional[OfferSession]:
        return self._sessions.get(user_id)

    async def start(self, user_id: int, settings: Optional[Any] = None) -> OfferSession:
        """Новая сессия; старая (если была) закрывается"""
        await self.close(user_id)
        session = OfferSession(self.client, settings, price_interval=self.price_interval)
        self._sessions[user_id] = session
        logger.info(f"Offer wizard started for user {user_id}")
        return session

    async def close(self, user_id: int):
        session = self._sessions.pop(user_id, None)
        if session is not None:
            await session.close()

    async def close_all(self):
        for user_id in list(self._sessions):
            await self.close(user_id)

    def __len__(self) -> int:
        return len(self._sessions)
