import os
from pathlib import Path
from dotenv import load_dotenv

# Явно указываем путь к .env относительно этого файла
load_dotenv(Path(__file__).parent / '.env')


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def _env_list(name: str, default: str) -> list[str]:
    """Список значений через запятую"""
    raw = os.getenv(name, default)
    return [item.strip().upper() for item in raw.split(',') if item.strip()]


# ============================================================
# TELEGRAM
# ============================================================

# Bot token - проверяется в validate_config() при старте
TELEGRAM_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN', '')

# Owner Telegram ID для дополнительной безопасности
# Если установлен (не 0), то только owner сможет использовать бота
OWNER_TELEGRAM_ID = int(os.getenv('OWNER_TELEGRAM_ID', '0'))


# ============================================================
# P2P EXCHANGE API
# ============================================================

# Базовый URL биржи (price feed, кошельки, платёжные методы, офферы)
P2P_API_URL = os.getenv('P2P_API_URL', 'http://localhost:4000')

# API Key (опционально, если требуется аутентификация)
P2P_API_KEY = os.getenv('P2P_API_KEY')

# Таймаут для запросов к API (секунды)
P2P_API_TIMEOUT = int(os.getenv('P2P_API_TIMEOUT', 15))


# ============================================================
# REDIS (user preferences)
# ============================================================

REDIS_HOST = os.getenv('REDIS_HOST', 'localhost')
REDIS_PORT = int(os.getenv('REDIS_PORT', 6379))
REDIS_DB = int(os.getenv('REDIS_DB', 0))
REDIS_PASSWORD = os.getenv('REDIS_PASSWORD')  # None if not set


# ============================================================
# MARKET PRICE
# ============================================================

# Интервал опроса рыночной цены (секунды)
MARKET_PRICE_POLL_INTERVAL = int(os.getenv('MARKET_PRICE_POLL_INTERVAL', 30))


# ============================================================
# OFFER DEFAULTS
# ============================================================

# Лимиты сделки всегда в USD (settlement unit)
DEFAULT_MIN_LIMIT_USD = float(os.getenv('DEFAULT_MIN_LIMIT_USD', 100))
DEFAULT_MAX_LIMIT_USD = float(os.getenv('DEFAULT_MAX_LIMIT_USD', 5000))

# Маржа по умолчанию для MARGIN модели
DEFAULT_MARGIN_VALUE = float(os.getenv('DEFAULT_MARGIN_VALUE', 2))

# Auto-cancel (минуты)
DEFAULT_AUTO_CANCEL_MINUTES = int(os.getenv('DEFAULT_AUTO_CANCEL_MINUTES', 60))
AUTO_CANCEL_PRESETS = [15, 30, 60, 120, 240]

# KYC по умолчанию обязателен
DEFAULT_KYC_REQUIRED = os.getenv('DEFAULT_KYC_REQUIRED', 'true').lower() == 'true'

# Буфер над минимумом для auto-adjust (+5%)
MIN_AMOUNT_BUFFER = 1.05

# Относительный epsilon для сравнения с лимитами
LIMIT_EPSILON_RATIO = 0.0001

# Доля баланса для автозаполнения суммы SELL оффера
SELL_PREFILL_RATIO = 0.1

# Максимум платёжных методов в одном оффере
MAX_PAYMENT_METHODS = int(os.getenv('MAX_PAYMENT_METHODS', 5))


# ============================================================
# WALLETS & CURRENCIES
# ============================================================

SUPPORTED_WALLET_TYPES = _env_list('SUPPORTED_WALLET_TYPES', 'FIAT,SPOT,ECO')

# Fallback если API не вернул список валют
DEFAULT_CURRENCIES = {
    'FIAT': _env_list('DEFAULT_FIAT_CURRENCIES', 'USD,EUR,GBP'),
    'SPOT': _env_list('DEFAULT_SPOT_CURRENCIES', 'BTC,ETH,USDT,SOL'),
    'ECO': _env_list('DEFAULT_ECO_CURRENCIES', 'BTC,ETH,USDT'),
}


# ============================================================
# LOGGING
# ============================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
if LOG_LEVEL not in VALID_LOG_LEVELS:
    LOG_LEVEL = 'INFO'


# ============================================================
# CONFIG VALIDATION
# ============================================================

def validate_config():
    """
    Валидация конфигурации при старте бота.
    Fail fast - бросает RuntimeError если что-то не так.

    Проверяет:
    - TELEGRAM_BOT_TOKEN установлен
    - Лимиты и интервалы > 0 и логичны
    - OWNER_TELEGRAM_ID валиден (если установлен)
    """

    errors = []

    # ===== Telegram =====
    if not TELEGRAM_BOT_TOKEN:
        errors.append("TELEGRAM_BOT_TOKEN не установлен")

    if OWNER_TELEGRAM_ID < 0:
        errors.append("OWNER_TELEGRAM_ID не может быть отрицательным")

    # ===== API =====
    if not P2P_API_URL:
        errors.append("P2P_API_URL не установлен")

    if P2P_API_TIMEOUT <= 0:
        errors.append(f"P2P_API_TIMEOUT должен быть > 0 (сейчас {P2P_API_TIMEOUT})")

    if MARKET_PRICE_POLL_INTERVAL <= 0:
        errors.append(f"MARKET_PRICE_POLL_INTERVAL должен быть > 0 (сейчас {MARKET_PRICE_POLL_INTERVAL})")

    # ===== Offer defaults =====
    if DEFAULT_MIN_LIMIT_USD <= 0:
        errors.append(f"DEFAULT_MIN_LIMIT_USD должен быть > 0 (сейчас {DEFAULT_MIN_LIMIT_USD})")

    if DEFAULT_MAX_LIMIT_USD <= 0:
        errors.append(f"DEFAULT_MAX_LIMIT_USD должен быть > 0 (сейчас {DEFAULT_MAX_LIMIT_USD})")

    if DEFAULT_MAX_LIMIT_USD < DEFAULT_MIN_LIMIT_USD:
        errors.append(
            f"DEFAULT_MAX_LIMIT_USD ({DEFAULT_MAX_LIMIT_USD}) не может быть меньше "
            f"DEFAULT_MIN_LIMIT_USD ({DEFAULT_MIN_LIMIT_USD})"
        )

    if DEFAULT_AUTO_CANCEL_MINUTES < 0:
        errors.append(f"DEFAULT_AUTO_CANCEL_MINUTES не может быть < 0 (сейчас {DEFAULT_AUTO_CANCEL_MINUTES})")

    if MAX_PAYMENT_METHODS < 1:
        errors.append(f"MAX_PAYMENT_METHODS должен быть >= 1 (сейчас {MAX_PAYMENT_METHODS})")

    unknown_wallets = [w for w in SUPPORTED_WALLET_TYPES if w not in ('FIAT', 'SPOT', 'ECO')]
    if unknown_wallets:
        errors.append(f"Неизвестные типы кошельков: {', '.join(unknown_wallets)}")

    # ===== Если есть ошибки, fail fast =====
    if errors:
        error_msg = "\n".join([f"  ❌ {err}" for err in errors])
        raise RuntimeError(
            f"\n{'='*60}\n"
            f"❌ CONFIG VALIDATION FAILED:\n"
            f"{'='*60}\n"
            f"{error_msg}\n"
            f"{'='*60}\n"
            f"Fix your .env file and restart the bot.\n"
        )

    # ===== Success =====
    print("✅ Config validation passed")
    print(f"   P2P API: {P2P_API_URL}")
    print(f"   Limits: ${DEFAULT_MIN_LIMIT_USD} – ${DEFAULT_MAX_LIMIT_USD}")
    print(f"   Price poll interval: {MARKET_PRICE_POLL_INTERVAL}s")
    print(f"   Wallets: {', '.join(SUPPORTED_WALLET_TYPES)}")
    if OWNER_TELEGRAM_ID > 0:
        print(f"   🔒 Owner-only mode: ID {OWNER_TELEGRAM_ID}")
    print("")
