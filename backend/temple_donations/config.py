"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
from pathlib import Path
from functools import lru_cache
from typing import List, Tuple

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from temple_donations.utils.validators import validate_upi_vpa

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "Temple Donations API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'donations.db'}"

    # --- PayU ---
    PAYU_MODE: str = "LIVE"
    PAYU_MERCHANT_KEY: str = ""
    PAYU_MERCHANT_SALT: SecretStr = SecretStr("")
    PAYU_PAYMENT_URL: str = "https://secure.payu.in/_payment"
    PAYU_VERIFY_URL: str = "https://info.payu.in/merchant/postservice.php?form=2"
    PAYU_TIMEOUT_SECONDS: float = 15.0

    # --- UPI ---
    UPI_MERCHANT_ID: str = "iskconjuhu@sbi"
    UPI_MERCHANT_NAME: str = "ISKCON Juhu"

    # --- Twilio / WhatsApp ---
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: SecretStr = SecretStr("")
    TWILIO_PHONE_NUMBER: str = ""
    WHATSAPP_ENABLED: bool = True

    # --- Transaction limits (INR) ---
    MIN_AMOUNT: int = 1
    MAX_AMOUNT: int = 500000  # 5 lakh limit for online donations

    # --- URLs ---
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    FRONTEND_BASE_URL: str = ""
    DEFAULT_PURPOSE: str = "ISKCON Juhu Donation"

    # --- Support contact shown on failure pages ---
    SUPPORT_PHONE: str = "+91-22-2620-6860"
    SUPPORT_EMAIL: str = "donations@iskconjuhu.org"

    # --- Receipt letterhead ---
    ORG_LEGAL_NAME: str = "International Society for Krishna Consciousness"
    ORG_ADDRESS: str = "Hare Krishna Land, Juhu, Mumbai - 400049"

    # --- Security ---
    CORS_ORIGINS: list[str] = ["*"]
    INITIATE_RATE_LIMIT: int = 10
    INITIATE_RATE_WINDOW_SECONDS: int = 60
    ADMIN_API_KEY: SecretStr = SecretStr("")

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def merchant_salt(self) -> str:
        return self.PAYU_MERCHANT_SALT.get_secret_value()

    @property
    def payu_success_url(self) -> str:
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/api/payments/success"

    @property
    def payu_failure_url(self) -> str:
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/api/payments/failure"


def validate_payment_config(settings: Settings) -> Tuple[bool, List[str]]:
    """Check that the credentials needed for live payments are present.

    Returns:
        Tuple of (is_valid, [errors]). Never includes secret values.
    """
    errors: List[str] = []

    if not settings.PAYU_MERCHANT_KEY:
        errors.append("PAYU_MERCHANT_KEY is required for live payments")
    if not settings.merchant_salt:
        errors.append("PAYU_MERCHANT_SALT is required for live payments")

    if settings.WHATSAPP_ENABLED:
        if not settings.TWILIO_ACCOUNT_SID:
            errors.append("TWILIO_ACCOUNT_SID is required for WhatsApp notifications")
        if not settings.TWILIO_AUTH_TOKEN.get_secret_value():
            errors.append("TWILIO_AUTH_TOKEN is required for WhatsApp notifications")
        if not settings.TWILIO_PHONE_NUMBER:
            errors.append("TWILIO_PHONE_NUMBER is required for WhatsApp notifications")

    if not validate_upi_vpa(settings.UPI_MERCHANT_ID):
        errors.append("UPI_MERCHANT_ID must be a UPI address such as temple@bank")

    if settings.MIN_AMOUNT <= 0 or settings.MAX_AMOUNT < settings.MIN_AMOUNT:
        errors.append("MIN_AMOUNT/MAX_AMOUNT must describe a positive range")

    return len(errors) == 0, errors


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
