import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_float(value: str | None, default: float) -> float:
    try:
        return float(value) if value else default
    except ValueError:
        return default


APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=APP_ENV.lower() == "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE_NAME = "Reservily API"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./reservily.db")

CLIENT_URL = os.getenv("CLIENT_URL", "*")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

SUBSCRIPTION_MONTHLY_PRICE = _get_float(os.getenv("SUBSCRIPTION_MONTHLY_PRICE"), 29.99)
SUBSCRIPTION_CURRENCY = os.getenv("SUBSCRIPTION_CURRENCY", "USD")
MAX_SUBSCRIPTION_MONTHS = 12

BANK_NAME = os.getenv("BANK_NAME", "National Bank")
BANK_ACCOUNT_NUMBER = os.getenv("BANK_ACCOUNT_NUMBER", "0000000000")
BANK_ACCOUNT_HOLDER = os.getenv("BANK_ACCOUNT_HOLDER", "Reservily Platform")
BANK_ROUTING_NUMBER = os.getenv("BANK_ROUTING_NUMBER", "000000000")

ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@reservily.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123456")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and ADMIN_PASSWORD == "admin123456":
        raise RuntimeError("ADMIN_PASSWORD must be set in production.")
