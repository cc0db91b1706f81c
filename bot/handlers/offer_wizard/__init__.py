"""
Offer Wizard - Модульный FSM для создания P2P оффера

Архитектура:
- utils.py - рендер шагов, доступ к сессии
- navigation.py - Cancel/Back/Next/Goto
- trade_type.py - шаги 1-3 (тип, кошелёк, валюта)
- amount_price.py - шаг 4
- payment_methods.py - шаг 5
- trade_settings.py - шаг 6
- location.py - шаг 7
- requirements.py - шаг 8
- review.py - шаг 9 (публикация)

Все модули имеют свои роутеры, которые собираются здесь в главный router
"""
from aiogram import Router

from . import review
from . import navigation
from . import trade_type
from . import amount_price
from . import payment_methods
from . import trade_settings
from . import location
from . import requirements

router = Router(name="offer_wizard")

# Review первым: на шаге 9 "offer:next" означает публикацию
router.include_router(review.router)

# Navigation до шагов (cancel/back/next/goto)
router.include_router(navigation.router)

router.include_router(trade_type.router)
router.include_router(amount_price.router)
router.include_router(payment_methods.router)
router.include_router(trade_settings.router)
router.include_router(location.router)
router.include_router(requirements.router)

__all__ = ['router']
