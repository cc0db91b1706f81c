"""
Trade Draft Store - черновик оффера через patch + reducer

Каждый шаг визарда шлёт типизированный patch, единый reducer
применяет его и возвращает новый TradeDraft. После каждого patch'а
пересчитываются производные поля (final_price, total_value, amount).

Повторное применение того же patch'а - no-op (идемпотентность).
"""
import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Type

import config
from .converter import AmountConverter
from .currency import classify_currency
from .models import (
    AmountConfig,
    LocationSettings,
    MarginType,
    PaymentMethod,
    PriceConfig,
    PriceModel,
    TradeDraft,
    TradeSettings,
    TradeType,
    UserRequirements,
    Visibility,
    WalletType,
)
from .pricing import reprice

logger = logging.getLogger(__name__)


class DraftPatchError(ValueError):
    """Patch нельзя применить к черновику (некорректный ввод)"""
    pass


# ============================================================
# PATCHES
# ============================================================

@dataclass(frozen=True)
class DraftPatch:
    """Базовый класс для patch'ей"""
    pass


@dataclass(frozen=True)
class SetTradeType(DraftPatch):
    trade_type: TradeType


@dataclass(frozen=True)
class SetWalletType(DraftPatch):
    wallet_type: WalletType


@dataclass(frozen=True)
class SetCurrency(DraftPatch):
    code: str
    available_balance: Optional[float] = None


@dataclass(frozen=True)
class SetAvailableBalance(DraftPatch):
    """Результат запроса баланса (владеет только available_balance)"""
    available_balance: Optional[float]


@dataclass(frozen=True)
class SetAmount(DraftPatch):
    """Пользователь редактировал amount"""
    amount: float


@dataclass(frozen=True)
class SetTotal(DraftPatch):
    """Пользователь редактировал total, amount производный"""
    total: float


@dataclass(frozen=True)
class SetLimits(DraftPatch):
    """Лимиты в USD, None - не менять"""
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class SetPriceModel(DraftPatch):
    model: PriceModel
    value: Optional[float] = None


@dataclass(frozen=True)
class SetFixedPrice(DraftPatch):
    price: float


@dataclass(frozen=True)
class SetMargin(DraftPatch):
    value: Optional[float] = None
    margin_type: Optional[MarginType] = None


@dataclass(frozen=True)
class SetMarketPrice(DraftPatch):
    """Тик рыночной цены (владеет только price_config.market_price)"""
    price: float


@dataclass(frozen=True)
class AutoAdjustAmount(DraftPatch):
    """Поднять amount до calculate_minimum_amount() (+5% буфер)"""
    pass


@dataclass(frozen=True)
class SelectPaymentMethod(DraftPatch):
    method: PaymentMethod


@dataclass(frozen=True)
class DeselectPaymentMethod(DraftPatch):
    method_id: str


@dataclass(frozen=True)
class UpdateTradeSettings(DraftPatch):
    """None - не менять. additional_notes="" очищает заметки"""
    auto_cancel: Optional[int] = None
    visibility: Optional[Visibility] = None
    terms_of_trade: Optional[str] = None
    additional_notes: Optional[str] = None
    kyc_required: Optional[bool] = None


@dataclass(frozen=True)
class UpdateLocation(DraftPatch):
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class AddRestriction(DraftPatch):
    country: str


@dataclass(frozen=True)
class RemoveRestriction(DraftPatch):
    country: str


@dataclass(frozen=True)
class UpdateUserRequirements(DraftPatch):
    min_completed_trades: Optional[int] = None
    min_success_rate: Optional[float] = None
    min_account_age: Optional[int] = None
    trusted_only: Optional[bool] = None


# ============================================================
# REDUCERS
# ============================================================

def _converter(draft: TradeDraft) -> AmountConverter:
    return AmountConverter(
        currency=draft.currency,
        final_price=draft.price_config.final_price,
        min_limit=draft.amount_config.min,
        max_limit=draft.amount_config.max,
    )


def _set_amount(draft: TradeDraft, amount: float) -> TradeDraft:
    return replace(
        draft,
        amount_config=replace(draft.amount_config, total=amount),
        amount_source="amount",
        total_input=None,
    )


def _apply_trade_type(draft: TradeDraft, patch: SetTradeType) -> TradeDraft:
    trade_type = TradeType(patch.trade_type)
    balance = draft.available_balance if trade_type == TradeType.SELL else None
    return replace(draft, trade_type=trade_type, available_balance=balance)


def _drop_market_price(draft: TradeDraft) -> TradeDraft:
    """Рыночная цена принадлежит ключу (валюта, кошелёк): при смене ключа ждём свежую"""
    price_config = replace(draft.price_config, market_price=0.0)
    if price_config.model == PriceModel.MARKET:
        price_config = replace(price_config, value=0.0)
    return replace(draft, price_config=price_config)


def _apply_wallet_type(draft: TradeDraft, patch: SetWalletType) -> TradeDraft:
    wallet_type = WalletType(patch.wallet_type)
    if wallet_type == draft.wallet_type:
        return draft
    # Баланс принадлежит пулу кошелька - при смене пула он недействителен
    draft = _drop_market_price(draft)
    return replace(draft, wallet_type=wallet_type, available_balance=None)


def _apply_currency(draft: TradeDraft, patch: SetCurrency) -> TradeDraft:
    try:
        currency = classify_currency(patch.code)
    except ValueError as e:
        raise DraftPatchError(str(e))

    balance = patch.available_balance if draft.trade_type == TradeType.SELL else None
    if currency != draft.currency:
        draft = _drop_market_price(draft)
    return replace(draft, currency=currency, available_balance=balance)


def _apply_balance(draft: TradeDraft, patch: SetAvailableBalance) -> TradeDraft:
    if draft.trade_type != TradeType.SELL:
        return draft
    return replace(draft, available_balance=patch.available_balance)


def _apply_amount(draft: TradeDraft, patch: SetAmount) -> TradeDraft:
    if patch.amount < 0:
        raise DraftPatchError("Amount cannot be negative")
    return _set_amount(draft, patch.amount)


def _apply_total(draft: TradeDraft, patch: SetTotal) -> TradeDraft:
    if patch.total < 0:
        raise DraftPatchError("Total cannot be negative")
    if not _converter(draft).has_price:
        raise DraftPatchError("Price is not available yet")
    # amount будет выведен из total в _recompute
    return replace(draft, amount_source="total", total_input=patch.total)


def _apply_limits(draft: TradeDraft, patch: SetLimits) -> TradeDraft:
    amount_config = draft.amount_config
    if patch.min is not None:
        if patch.min < 0:
            raise DraftPatchError("Minimum limit cannot be negative")
        amount_config = replace(amount_config, min=patch.min)
    if patch.max is not None:
        if patch.max < 0:
            raise DraftPatchError("Maximum limit cannot be negative")
        amount_config = replace(amount_config, max=patch.max)
    return replace(draft, amount_config=amount_config)


def _apply_price_model(draft: TradeDraft, patch: SetPriceModel) -> TradeDraft:
    model = PriceModel(patch.model)
    price_config = draft.price_config

    if model == PriceModel.FIXED:
        value = patch.value if patch.value is not None else price_config.final_price
        price_config = replace(price_config, model=model, value=value, margin_type=None)
    elif model == PriceModel.MARKET:
        price_config = replace(
            price_config, model=model, value=price_config.market_price, margin_type=None
        )
    else:
        value = patch.value if patch.value is not None else config.DEFAULT_MARGIN_VALUE
        margin_type = price_config.margin_type or MarginType.PERCENTAGE
        price_config = replace(price_config, model=model, value=value, margin_type=margin_type)

    return replace(draft, price_config=price_config)


def _apply_fixed_price(draft: TradeDraft, patch: SetFixedPrice) -> TradeDraft:
    if draft.price_config.model != PriceModel.FIXED:
        raise DraftPatchError("Fixed price can only be set for the FIXED price model")
    return replace(draft, price_config=replace(draft.price_config, value=patch.price))


def _apply_margin(draft: TradeDraft, patch: SetMargin) -> TradeDraft:
    price_config = draft.price_config
    if price_config.model != PriceModel.MARGIN:
        raise DraftPatchError("Margin can only be set for the MARGIN price model")
    if patch.value is not None:
        price_config = replace(price_config, value=patch.value)
    if patch.margin_type is not None:
        price_config = replace(price_config, margin_type=MarginType(patch.margin_type))
    return replace(draft, price_config=price_config)


def _apply_market_price(draft: TradeDraft, patch: SetMarketPrice) -> TradeDraft:
    price_config = replace(draft.price_config, market_price=patch.price or 0.0)
    if price_config.model == PriceModel.MARKET:
        price_config = replace(price_config, value=price_config.market_price)
    return replace(draft, price_config=price_config)


def _apply_auto_adjust(draft: TradeDraft, patch: AutoAdjustAmount) -> TradeDraft:
    minimum = _converter(draft).calculate_minimum_amount()
    if minimum is None:
        logger.debug("Auto-adjust skipped: price or minimum limit unavailable")
        return draft
    return _set_amount(draft, minimum)


def _apply_select_method(draft: TradeDraft, patch: SelectPaymentMethod) -> TradeDraft:
    if any(m.id == patch.method.id for m in draft.payment_methods):
        return draft
    if len(draft.payment_methods) >= config.MAX_PAYMENT_METHODS:
        raise DraftPatchError(
            f"You can select up to {config.MAX_PAYMENT_METHODS} payment methods"
        )
    return replace(draft, payment_methods=draft.payment_methods + (patch.method,))


def _apply_deselect_method(draft: TradeDraft, patch: DeselectPaymentMethod) -> TradeDraft:
    methods = tuple(m for m in draft.payment_methods if m.id != patch.method_id)
    return replace(draft, payment_methods=methods)


def _apply_trade_settings(draft: TradeDraft, patch: UpdateTradeSettings) -> TradeDraft:
    settings = draft.trade_settings
    if patch.auto_cancel is not None:
        if patch.auto_cancel < 0:
            raise DraftPatchError("Auto-cancel cannot be negative")
        settings = replace(settings, auto_cancel=patch.auto_cancel)
    if patch.visibility is not None:
        settings = replace(settings, visibility=Visibility(patch.visibility))
    if patch.terms_of_trade is not None:
        settings = replace(settings, terms_of_trade=patch.terms_of_trade.strip())
    if patch.additional_notes is not None:
        settings = replace(settings, additional_notes=patch.additional_notes.strip() or None)
    if patch.kyc_required is not None:
        settings = replace(settings, kyc_required=patch.kyc_required)
    return replace(draft, trade_settings=settings)


def _apply_location(draft: TradeDraft, patch: UpdateLocation) -> TradeDraft:
    location = draft.location_settings
    if patch.country is not None:
        country = patch.country.strip().upper()
        restrictions = tuple(c for c in location.restrictions if c != country)
        location = replace(location, country=country, restrictions=restrictions)
    if patch.region is not None:
        location = replace(location, region=patch.region.strip() or None)
    if patch.city is not None:
        location = replace(location, city=patch.city.strip() or None)
    return replace(draft, location_settings=location)


def _apply_add_restriction(draft: TradeDraft, patch: AddRestriction) -> TradeDraft:
    location = draft.location_settings
    code = patch.country.strip().upper()
    if not code:
        raise DraftPatchError("Country code is required")
    if code == location.country:
        raise DraftPatchError("You cannot restrict your own country")
    if code in location.restrictions:
        return draft
    location = replace(location, restrictions=location.restrictions + (code,))
    return replace(draft, location_settings=location)


def _apply_remove_restriction(draft: TradeDraft, patch: RemoveRestriction) -> TradeDraft:
    location = draft.location_settings
    code = patch.country.strip().upper()
    restrictions = tuple(c for c in location.restrictions if c != code)
    return replace(draft, location_settings=replace(location, restrictions=restrictions))


def _apply_requirements(draft: TradeDraft, patch: UpdateUserRequirements) -> TradeDraft:
    reqs = draft.user_requirements
    if patch.min_completed_trades is not None:
        if patch.min_completed_trades < 0:
            raise DraftPatchError("Minimum completed trades cannot be negative")
        reqs = replace(reqs, min_completed_trades=patch.min_completed_trades)
    if patch.min_success_rate is not None:
        if not 0 <= patch.min_success_rate <= 100:
            raise DraftPatchError("Minimum success rate must be between 0 and 100")
        reqs = replace(reqs, min_success_rate=patch.min_success_rate)
    if patch.min_account_age is not None:
        if patch.min_account_age < 0:
            raise DraftPatchError("Minimum account age cannot be negative")
        reqs = replace(reqs, min_account_age=patch.min_account_age)
    if patch.trusted_only is not None:
        reqs = replace(reqs, trusted_only=patch.trusted_only)
    return replace(draft, user_requirements=reqs)


_REDUCERS: Dict[Type[DraftPatch], Callable[[TradeDraft, DraftPatch], TradeDraft]] = {
    SetTradeType: _apply_trade_type,
    SetWalletType: _apply_wallet_type,
    SetCurrency: _apply_currency,
    SetAvailableBalance: _apply_balance,
    SetAmount: _apply_amount,
    SetTotal: _apply_total,
    SetLimits: _apply_limits,
    SetPriceModel: _apply_price_model,
    SetFixedPrice: _apply_fixed_price,
    SetMargin: _apply_margin,
    SetMarketPrice: _apply_market_price,
    AutoAdjustAmount: _apply_auto_adjust,
    SelectPaymentMethod: _apply_select_method,
    DeselectPaymentMethod: _apply_deselect_method,
    UpdateTradeSettings: _apply_trade_settings,
    UpdateLocation: _apply_location,
    AddRestriction: _apply_add_restriction,
    RemoveRestriction: _apply_remove_restriction,
    UpdateUserRequirements: _apply_requirements,
}


def _recompute(draft: TradeDraft) -> TradeDraft:
    """Пересчёт производных полей: final_price, amount (из total), total_value"""
    price_config = reprice(draft.price_config, draft.trade_type)
    draft = replace(draft, price_config=price_config)

    if draft.amount_source == "total" and draft.total_input is not None:
        amount = _converter(draft).total_to_amount(draft.total_input)
        if amount is not None:
            draft = replace(draft, amount_config=replace(draft.amount_config, total=amount))

    amount_config = replace(draft.amount_config, available_balance=draft.available_balance)
    total_value = _converter(draft).format_total_value(amount_config.total)

    return replace(draft, amount_config=amount_config, total_value=total_value)


def reduce_draft(draft: TradeDraft, patch: DraftPatch) -> TradeDraft:
    """
    Применить patch к черновику.

    Raises:
        DraftPatchError: Некорректный ввод
        TypeError: Неизвестный тип patch'а
    """
    reducer = _REDUCERS.get(type(patch))
    if reducer is None:
        raise TypeError(f"Unknown draft patch: {type(patch).__name__}")
    return _recompute(reducer(draft, patch))


# ============================================================
# STORE
# ============================================================

def create_draft(
    min_limit: float = config.DEFAULT_MIN_LIMIT_USD,
    max_limit: float = config.DEFAULT_MAX_LIMIT_USD,
    auto_cancel: int = config.DEFAULT_AUTO_CANCEL_MINUTES,
    kyc_required: bool = config.DEFAULT_KYC_REQUIRED,
    terms_of_trade: str = "",
    country: str = "",
) -> TradeDraft:
    """Новый черновик с дефолтами (лимиты, auto-cancel, KYC, префиллы из настроек)"""
    return _recompute(TradeDraft(
        amount_config=AmountConfig(min=min_limit, max=max_limit),
        price_config=PriceConfig(model=PriceModel.FIXED),
        trade_settings=TradeSettings(
            auto_cancel=auto_cancel,
            kyc_required=kyc_required,
            terms_of_trade=terms_of_trade,
        ),
        location_settings=LocationSettings(country=country.strip().upper()),
        user_requirements=UserRequirements(),
    ))


class TradeDraftStore:
    """
    Единственный источник правды для черновика.

    history - журнал применённых patch'ей (для отладки и тестов).
    """

    def __init__(self, draft: Optional[TradeDraft] = None):
        self._initial = draft or create_draft()
        self.draft = self._initial
        self.history: List[DraftPatch] = []

    def dispatch(self, patch: DraftPatch) -> TradeDraft:
        """Применить patch и вернуть новый черновик"""
        self.draft = reduce_draft(self.draft, patch)
        self.history.append(patch)
        return self.draft

    def dispatch_many(self, patches: Iterable[DraftPatch]) -> TradeDraft:
        """Применить пачку patch'ей атомарно: при ошибке черновик не меняется"""
        patches = list(patches)
        draft = self.draft
        for patch in patches:
            draft = reduce_draft(draft, patch)
        self.draft = draft
        self.history.extend(patches)
        return self.draft

    def reset(self):
        """Сбросить черновик (после submit или cancel)"""
        self.draft = self._initial
        self.history = []
