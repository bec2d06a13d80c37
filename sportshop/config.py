import os
from functools import lru_cache

# Prefer loading environment variables from a .env file if one exists
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(usecwd=True)
if _env_path:
    load_dotenv(_env_path, override=False)


def _flag(name: str, default: str) -> bool:
    return bool(int(os.getenv(name, default)))


class Settings:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change_me_secret")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    # Default to 7 days so users stay logged in for a week
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))
    DATABASE_URL: str = os.getenv("DATABASE_URL")
    # Sender account for notification mail; also treated as an admin login
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL")
    ADMIN_EMAIL_PASSWORD: str = os.getenv("ADMIN_EMAIL_PASSWORD")
    SMTP_SERVER: str = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    EMAIL_BACKEND: str = os.getenv("EMAIL_BACKEND", "console").lower()
    # Feature flag for sending notification emails
    ENABLE_EMAIL_NOTIFICATIONS: bool = _flag("ENABLE_EMAIL_NOTIFICATIONS", "1")

    # MoMo payment gateway (sandbox defaults)
    MOMO_ENDPOINT: str = os.getenv("MOMO_ENDPOINT", "https://test-payment.momo.vn/v2/gateway/api/create")
    MOMO_PARTNER_CODE: str = os.getenv("MOMO_PARTNER_CODE", "MOMO")
    MOMO_ACCESS_KEY: str = os.getenv("MOMO_ACCESS_KEY", "")
    MOMO_SECRET_KEY: str = os.getenv("MOMO_SECRET_KEY", "")
    MOMO_REDIRECT_URL: str = os.getenv("MOMO_REDIRECT_URL", "http://localhost:5173/checkout/success/{order_id}")
    MOMO_IPN_URL: str = os.getenv("MOMO_IPN_URL", "http://localhost:8000/api/payments/momo/ipn")
    MOMO_TIMEOUT_SECONDS: float = float(os.getenv("MOMO_TIMEOUT_SECONDS", "15"))
    MOMO_VERIFY_IPN: bool = _flag("MOMO_VERIFY_IPN", "1")

    # Store is operated in Vietnam (GMT+7); used for history stamps and week boundaries
    BUSINESS_UTC_OFFSET_HOURS: int = int(os.getenv("BUSINESS_UTC_OFFSET_HOURS", "7"))

    # Behaviour tracking: a user's session rolls over after this much inactivity
    TRACKING_SESSION_IDLE_SECONDS: int = int(os.getenv("TRACKING_SESSION_IDLE_SECONDS", "60"))
    TRACKING_SESSION_TTL_SECONDS: int = int(os.getenv("TRACKING_SESSION_TTL_SECONDS", "1800"))


@lru_cache
def get_settings():
    return Settings()
