from aiogram.fsm.state import State, StatesGroup


class OfferStates(StatesGroup):
    """
    FSM States для Offer Wizard (пошаговое создание P2P оффера)

    Шаги:
    1. Тип сделки (Buy/Sell)
    2. Тип кошелька (Fiat/Spot/Funding)
    3. Валюта
    4. Количество и цена (+ лимиты в USD)
    5. Платёжные методы
    6. Настройки сделки (условия, auto-cancel, видимость, KYC)
    7. Локация и ограничения по странам
    8. Требования к контрагенту (необязательно)
    9. Проверка и публикация
    """

    choosing_trade_type = State()   # Шаг 1
    choosing_wallet = State()       # Шаг 2
    choosing_currency = State()     # Шаг 3
    amount_price = State()          # Шаг 4
    payment_methods = State()       # Шаг 5
    trade_settings = State()        # Шаг 6
    location = State()              # Шаг 7
    requirements = State()          # Шаг 8
    review = State()                # Шаг 9

    # Ввод текста (поле хранится в FSM data: input_field)
    entering_amount_value = State()    # amount / total / limits / price / margin
    entering_custom_method = State()   # кастомный платёжный метод
    entering_settings_text = State()   # условия сделки / заметки
    entering_location_text = State()   # страна / регион / город / ограничение
    entering_requirement = State()     # сделки / success rate / возраст аккаунта
