"""
Inline клавиатуры для Offer Wizard
"""
from typing import Dict, Iterable, List, Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

import config
from services.p2p_offer import (
    LocationSettings,
    MarginType,
    PaymentMethod,
    PriceModel,
    Step,
    TradeDraft,
    TradeSettings,
    UserRequirements,
    Visibility,
)

WALLET_LABELS = {
    "FIAT": "💵 Fiat",
    "SPOT": "📈 Spot",
    "ECO": "🏦 Funding",
}

MODEL_LABELS = {
    PriceModel.FIXED: "📌 Fixed",
    PriceModel.MARKET: "📊 Market",
    PriceModel.MARGIN: "📐 Margin",
}


def _nav_row(builder: InlineKeyboardBuilder, can_continue: bool, show_back: bool = True):
    """Назад / Отмена / Далее. Далее только если шаг завершён"""
    buttons = []
    if show_back:
        buttons.append(InlineKeyboardButton(text="◀️ Назад", callback_data="offer:back"))
    buttons.append(InlineKeyboardButton(text="❌ Отмена", callback_data="offer:cancel"))
    if can_continue:
        buttons.append(InlineKeyboardButton(text="Далее ▶️", callback_data="offer:next"))
    builder.row(*buttons)


def _check(flag: bool) -> str:
    return "✅" if flag else "⬜️"


# ============================================================
# Шаги 1-3
# ============================================================

def get_trade_type_keyboard(selected: Optional[str] = None, can_continue: bool = False) -> InlineKeyboardMarkup:
    """Шаг 1: Buy / Sell"""
    builder = InlineKeyboardBuilder()

    buy = "🟢 Купить" + (" ✓" if selected == "BUY" else "")
    sell = "🔴 Продать" + (" ✓" if selected == "SELL" else "")
    builder.row(
        InlineKeyboardButton(text=buy, callback_data="otype:BUY"),
        InlineKeyboardButton(text=sell, callback_data="otype:SELL")
    )

    _nav_row(builder, can_continue, show_back=False)
    return builder.as_markup()


def get_wallet_keyboard(
    options: Iterable[str],
    selected: Optional[str] = None,
    can_continue: bool = False,
) -> InlineKeyboardMarkup:
    """Шаг 2: тип кошелька"""
    builder = InlineKeyboardBuilder()

    for wallet in options:
        label = WALLET_LABELS.get(wallet, wallet)
        if wallet == selected:
            label += " ✓"
        builder.row(InlineKeyboardButton(text=label, callback_data=f"owallet:{wallet}"))

    _nav_row(builder, can_continue)
    return builder.as_markup()


def get_currency_keyboard(
    currencies: List[Dict[str, str]],
    selected: Optional[str] = None,
    can_continue: bool = False,
) -> InlineKeyboardMarkup:
    """
    Шаг 3: валюта

    Args:
        currencies: [{"value": "BTC", "label": "Bitcoin"}, ...]
    """
    builder = InlineKeyboardBuilder()

    for item in currencies:
        code = item["value"]
        label = code if code == item.get("label", code) else f"{code} · {item['label']}"
        if code == selected:
            label += " ✓"
        builder.button(text=label, callback_data=f"ocur:{code}")
    builder.adjust(3)

    _nav_row(builder, can_continue)
    return builder.as_markup()


# ============================================================
# Шаг 4: Amount & Price
# ============================================================

def get_amount_price_keyboard(
    draft: TradeDraft,
    can_auto_adjust: bool = False,
    can_continue: bool = False,
) -> InlineKeyboardMarkup:
    """
    Шаг 4: количество, модель цены, лимиты

    Auto-adjust показывается только если сумма ниже минимума.
    """
    builder = InlineKeyboardBuilder()
    price_config = draft.price_config

    builder.row(
        InlineKeyboardButton(text=f"✏️ Количество ({draft.currency_code})", callback_data="oamt:amount"),
        InlineKeyboardButton(text="✏️ Total", callback_data="oamt:total")
    )

    builder.row(*[
        InlineKeyboardButton(
            text=label + (" ✓" if model == price_config.model else ""),
            callback_data=f"omodel:{model.value}"
        )
        for model, label in MODEL_LABELS.items()
    ])

    if price_config.model == PriceModel.FIXED:
        builder.row(InlineKeyboardButton(text="💲 Цена", callback_data="oamt:price"))
    elif price_config.model == PriceModel.MARGIN:
        mtype = "%" if price_config.margin_type != MarginType.FIXED else "USD"
        builder.row(
            InlineKeyboardButton(text="📐 Маржа", callback_data="oamt:margin"),
            InlineKeyboardButton(text=f"🔁 Тип: {mtype}", callback_data="oamt:mtype")
        )

    builder.row(
        InlineKeyboardButton(text="⬇️ Min лимит", callback_data="oamt:min"),
        InlineKeyboardButton(text="⬆️ Max лимит", callback_data="oamt:max")
    )

    if can_auto_adjust:
        builder.row(
            InlineKeyboardButton(text="🪄 Поднять до минимума", callback_data="oamt:auto")
        )

    builder.row(InlineKeyboardButton(text="🔄 Обновить цену", callback_data="offer:refresh"))

    _nav_row(builder, can_continue)
    return builder.as_markup()


# ============================================================
# Шаг 5: Платёжные методы
# ============================================================

def get_payment_methods_keyboard(
    methods: List[PaymentMethod],
    selected_ids: Iterable[str],
    can_continue: bool = False,
) -> InlineKeyboardMarkup:
    """Шаг 5: выбор методов (toggle), кастомные можно удалить"""
    builder = InlineKeyboardBuilder()
    selected_ids = set(selected_ids)

    for method in methods:
        if not method.available:
            continue
        text = f"{_check(method.id in selected_ids)} {method.name}"
        if method.is_custom:
            builder.row(
                InlineKeyboardButton(text=text, callback_data=f"opm:toggle:{method.id}"),
                InlineKeyboardButton(text="✏️", callback_data=f"opm:rename:{method.id}"),
                InlineKeyboardButton(text="🗑", callback_data=f"opm:del:{method.id}")
            )
        else:
            builder.row(InlineKeyboardButton(text=text, callback_data=f"opm:toggle:{method.id}"))

    builder.row(InlineKeyboardButton(text="➕ Свой метод", callback_data="opm:add"))

    _nav_row(builder, can_continue)
    return builder.as_markup()


# ============================================================
# Шаг 6: Настройки сделки
# ============================================================

def get_trade_settings_keyboard(settings: TradeSettings, can_continue: bool = False) -> InlineKeyboardMarkup:
    """Шаг 6: условия, auto-cancel, видимость, KYC"""
    builder = InlineKeyboardBuilder()

    builder.row(
        InlineKeyboardButton(text="📝 Условия сделки", callback_data="oset:terms"),
        InlineKeyboardButton(text="🗒 Заметки", callback_data="oset:notes")
    )

    # Auto-cancel пресеты
    builder.row(*[
        InlineKeyboardButton(
            text=f"{minutes}м" + (" ✓" if settings.auto_cancel == minutes else ""),
            callback_data=f"oset:ac:{minutes}"
        )
        for minutes in config.AUTO_CANCEL_PRESETS
    ])
    builder.row(
        InlineKeyboardButton(
            text=f"{_check(settings.auto_cancel == 0)} Без auto-cancel",
            callback_data="oset:ac:0"
        )
    )

    builder.row(
        InlineKeyboardButton(
            text=f"{_check(settings.visibility == Visibility.PRIVATE)} Скрытый оффер",
            callback_data="oset:hidden"
        ),
        InlineKeyboardButton(
            text=f"{_check(settings.kyc_required)} KYC",
            callback_data="oset:kyc"
        )
    )

    _nav_row(builder, can_continue)
    return builder.as_markup()


# ============================================================
# Шаг 7: Локация
# ============================================================

def get_location_keyboard(location: LocationSettings, can_continue: bool = False) -> InlineKeyboardMarkup:
    """Шаг 7: страна, регион, город, ограничения"""
    builder = InlineKeyboardBuilder()

    builder.row(InlineKeyboardButton(text="🌍 Страна", callback_data="oloc:country"))
    builder.row(
        InlineKeyboardButton(text="🗺 Регион", callback_data="oloc:region"),
        InlineKeyboardButton(text="🏙 Город", callback_data="oloc:city")
    )
    builder.row(InlineKeyboardButton(text="🚫 Исключить страну", callback_data="oloc:restrict"))

    # Снятие ограничений, по 4 в ряд
    codes = list(location.restrictions)
    for i in range(0, len(codes), 4):
        builder.row(*[
            InlineKeyboardButton(text=f"❎ {code}", callback_data=f"oloc:unr:{code}")
            for code in codes[i:i + 4]
        ])

    _nav_row(builder, can_continue)
    return builder.as_markup()


# ============================================================
# Шаг 8: Требования
# ============================================================

def get_requirements_keyboard(reqs: UserRequirements) -> InlineKeyboardMarkup:
    """Шаг 8: необязательные требования, шаг всегда завершён"""
    builder = InlineKeyboardBuilder()

    builder.row(
        InlineKeyboardButton(text="🔢 Мин. сделок", callback_data="oreq:trades"),
        InlineKeyboardButton(text="📈 Success rate", callback_data="oreq:rate")
    )
    builder.row(
        InlineKeyboardButton(text="📅 Возраст аккаунта", callback_data="oreq:age"),
        InlineKeyboardButton(
            text=f"{_check(reqs.trusted_only)} Только доверенные",
            callback_data="oreq:trusted"
        )
    )

    _nav_row(builder, can_continue=True)
    return builder.as_markup()


# ============================================================
# Шаг 9: Review
# ============================================================

REVIEW_EDIT_STEPS = [
    (Step.AMOUNT_PRICE, "💰 Цена"),
    (Step.PAYMENT_METHODS, "💳 Оплата"),
    (Step.TRADE_SETTINGS, "⚙️ Условия"),
    (Step.LOCATION, "🌍 Локация"),
]


def get_review_keyboard(can_complete: bool = True) -> InlineKeyboardMarkup:
    """Шаг 9: публикация + быстрые переходы к редактированию"""
    builder = InlineKeyboardBuilder()

    for step, label in REVIEW_EDIT_STEPS:
        builder.button(text=label, callback_data=f"offer:goto:{int(step)}")
    builder.adjust(2)

    if can_complete:
        builder.row(InlineKeyboardButton(text="✅ Опубликовать", callback_data="offer:next"))

    builder.row(
        InlineKeyboardButton(text="◀️ Назад", callback_data="offer:back"),
        InlineKeyboardButton(text="❌ Отмена", callback_data="offer:cancel")
    )
    return builder.as_markup()


def get_input_cancel_keyboard() -> InlineKeyboardMarkup:
    """Отмена ввода значения (возврат к шагу)"""
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="↩️ Вернуться", callback_data="offer:input_cancel"))
    return builder.as_markup()


def get_offer_created_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="➕ Ещё оффер", callback_data="offer:new"))
    return builder.as_markup()
