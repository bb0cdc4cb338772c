# barbershop/config.py

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    db_url: str = os.getenv("DB_URL", "sqlite:///./barbershop.db")
    # seconds a SQLite writer waits for the lock before giving up
    db_busy_timeout: float = float(os.getenv("DB_BUSY_TIMEOUT", "10"))
    timezone: str = os.getenv("SHOP_TIMEZONE", "Europe/Istanbul")

    # same-day bookings need this much notice
    same_day_lead_minutes: int = int(os.getenv("SAME_DAY_LEAD_MINUTES", "180"))
    # customers cannot cancel an approved appointment closer than this to its start
    approved_cancel_min_hours: float = float(os.getenv("APPROVED_CANCEL_MIN_HOURS", "2"))

    admin_phone: str = os.getenv("ADMIN_PHONE", "")
    default_tenant_id: str = os.getenv("DEFAULT_TENANT_ID", "default")

    subscription_initial_occurrences: int = int(os.getenv("SUBSCRIPTION_INITIAL_OCCURRENCES", "100"))
    subscription_topup_occurrences: int = int(os.getenv("SUBSCRIPTION_TOPUP_OCCURRENCES", "50"))

    secret_key: str = os.getenv("SECRET_KEY", "change-me-later")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
