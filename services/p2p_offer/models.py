"""
P2P Offer Models

Модели данных черновика оффера (TradeDraft) и его секций.
Все модели неизменяемые: изменения идут только через reducer (draft_store.py).
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Tuple, Dict, Any

from .currency import Currency


class Step(IntEnum):
    """Шаги визарда создания оффера"""
    TRADE_TYPE = 1
    WALLET_TYPE = 2
    CURRENCY = 3
    AMOUNT_PRICE = 4
    PAYMENT_METHODS = 5
    TRADE_SETTINGS = 6
    LOCATION = 7
    USER_REQUIREMENTS = 8
    REVIEW = 9


TOTAL_STEPS = len(Step)


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class WalletType(str, Enum):
    FIAT = "FIAT"
    SPOT = "SPOT"
    ECO = "ECO"  # funding


class PriceModel(str, Enum):
    FIXED = "FIXED"
    MARKET = "MARKET"
    MARGIN = "MARGIN"


class MarginType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


@dataclass(frozen=True)
class AmountConfig:
    """
    Объём оффера.

    Attributes:
        total: Количество в единицах валюты оффера
        min: Минимальный лимит сделки (ВСЕГДА в USD)
        max: Максимальный лимит сделки (ВСЕГДА в USD)
        available_balance: Доступный баланс (только SELL)
    """
    total: float = 0.0
    min: float = 0.0
    max: float = 0.0
    available_balance: Optional[float] = None

    def to_api(self) -> Dict[str, Any]:
        data = {"total": self.total, "min": self.min, "max": self.max}
        if self.available_balance is not None:
            data["availableBalance"] = self.available_balance
        return data


@dataclass(frozen=True)
class PriceConfig:
    """
    Цена оффера.

    final_price - единственный источник правды для цены 1 единицы валюты в USD.
    value - фиксированная цена (FIXED) или маржа (MARGIN).
    """
    model: PriceModel = PriceModel.FIXED
    value: float = 0.0
    market_price: float = 0.0
    final_price: float = 0.0
    margin_type: Optional[MarginType] = None

    def to_api(self) -> Dict[str, Any]:
        data = {
            "model": self.model.value,
            "value": self.value,
            "marketPrice": self.market_price,
            "finalPrice": self.final_price,
        }
        if self.margin_type is not None:
            data["marginType"] = self.margin_type.value
        return data


@dataclass(frozen=True)
class PaymentMethod:
    """Платёжный метод (системный или кастомный)"""
    id: str
    name: str
    description: Optional[str] = None
    processing_time: Optional[str] = None
    instructions: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    is_custom: bool = False
    available: bool = True

    def to_api(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "details": dict(self.details)}
        if self.description:
            data["description"] = self.description
        if self.processing_time:
            data["processingTime"] = self.processing_time
        if self.instructions:
            data["instructions"] = self.instructions
        return data

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PaymentMethod':
        available = data.get("available", True)
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            description=data.get("description"),
            processing_time=data.get("processingTime"),
            instructions=data.get("instructions"),
            details=data.get("details") or {},
            is_custom=bool(data.get("userId")) or bool(data.get("isCustom")),
            available=available is True or available == 1,
        )


@dataclass(frozen=True)
class TradeSettings:
    """Настройки сделки (шаг 6)"""
    auto_cancel: int = 60  # минуты, 0 = выключено
    visibility: Visibility = Visibility.PUBLIC
    terms_of_trade: str = ""
    additional_notes: Optional[str] = None
    kyc_required: bool = True

    def to_api(self) -> Dict[str, Any]:
        data = {
            "autoCancel": self.auto_cancel,
            "visibility": self.visibility.value,
            "termsOfTrade": self.terms_of_trade,
            "kycRequired": self.kyc_required,
        }
        if self.additional_notes:
            data["additionalNotes"] = self.additional_notes
        return data


@dataclass(frozen=True)
class LocationSettings:
    """Локация (шаг 7). restrictions - страны, исключённые из торговли"""
    country: str = ""
    region: Optional[str] = None
    city: Optional[str] = None
    restrictions: Tuple[str, ...] = ()

    def to_api(self) -> Dict[str, Any]:
        data = {"country": self.country, "restrictions": list(self.restrictions)}
        if self.region:
            data["region"] = self.region
        if self.city:
            data["city"] = self.city
        return data


@dataclass(frozen=True)
class UserRequirements:
    """Требования к контрагенту (шаг 8), никогда не блокируют шаг"""
    min_completed_trades: int = 0
    min_success_rate: float = 0.0
    min_account_age: int = 0  # дни
    trusted_only: bool = False

    def to_api(self) -> Dict[str, Any]:
        return {
            "minCompletedTrades": self.min_completed_trades,
            "minSuccessRate": self.min_success_rate,
            "minAccountAge": self.min_account_age,
            "trustedOnly": self.trusted_only,
        }


@dataclass(frozen=True)
class TradeDraft:
    """
    Черновик оффера - агрегат всех шагов визарда.

    Живёт только в памяти на время прохождения визарда.
    total_value - кэш строкой (2 знака), пересчитывается reducer'ом.
    amount_source - какое поле пользователь редактировал последним ("amount" | "total").
    total_input - введённый total, если источник правды "total".
    """
    trade_type: Optional[TradeType] = None
    wallet_type: Optional[WalletType] = None
    currency: Optional[Currency] = None
    available_balance: Optional[float] = None
    amount_config: AmountConfig = field(default_factory=AmountConfig)
    price_config: PriceConfig = field(default_factory=PriceConfig)
    payment_methods: Tuple[PaymentMethod, ...] = ()
    trade_settings: TradeSettings = field(default_factory=TradeSettings)
    location_settings: LocationSettings = field(default_factory=LocationSettings)
    user_requirements: UserRequirements = field(default_factory=UserRequirements)
    total_value: str = "0.00"
    amount_source: str = "amount"
    total_input: Optional[float] = None

    @property
    def amount(self) -> float:
        return self.amount_config.total

    @property
    def currency_code(self) -> str:
        return self.currency.code if self.currency else ""

    @property
    def is_fiat(self) -> bool:
        return bool(self.currency and self.currency.is_fiat)
