"""
P2P Offer Wizard Engine

Движок визарда создания P2P оффера: черновик, цены, конвертация,
валидация, навигация по шагам и отправка.
"""
from .currency import CryptoCurrency, Currency, FiatCurrency, classify_currency, is_fiat_currency_code
from .models import (
    AmountConfig,
    LocationSettings,
    MarginType,
    PaymentMethod,
    PriceConfig,
    PriceModel,
    Step,
    TOTAL_STEPS,
    TradeDraft,
    TradeSettings,
    TradeType,
    UserRequirements,
    Visibility,
    WalletType,
)
from .pricing import calculate_final_price, describe_price, reprice
from .converter import AmountConverter
from .validation import ValidationResult, validate_amount_price, validate_step
from .wizard import WizardStateMachine
from .draft_store import DraftPatchError, TradeDraftStore, create_draft, reduce_draft
from .price_source import MarketPriceSource, PollHandle, PriceKey
from .submission import SubmissionPipeline, SubmissionResult, SubmissionStatus, build_offer_payload
from .session import OfferSession, OfferSessionRegistry

__all__ = [
    'CryptoCurrency', 'Currency', 'FiatCurrency', 'classify_currency', 'is_fiat_currency_code',
    'AmountConfig', 'LocationSettings', 'MarginType', 'PaymentMethod', 'PriceConfig',
    'PriceModel', 'Step', 'TOTAL_STEPS', 'TradeDraft', 'TradeSettings', 'TradeType',
    'UserRequirements', 'Visibility', 'WalletType',
    'calculate_final_price', 'describe_price', 'reprice',
    'AmountConverter',
    'ValidationResult', 'validate_amount_price', 'validate_step',
    'WizardStateMachine',
    'DraftPatchError', 'TradeDraftStore', 'create_draft', 'reduce_draft',
    'MarketPriceSource', 'PollHandle', 'PriceKey',
    'SubmissionPipeline', 'SubmissionResult', 'SubmissionStatus', 'build_offer_payload',
    'OfferSession', 'OfferSessionRegistry',
]
