"""
Application configuration settings
"""

from decimal import Decimal
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    # Application
    app_name: str = "CamPulse Escrow"
    debug: bool = False

    # Database Configuration
    database_url: str = "sqlite:///./campulse.db"

    # Paystack (the secret key also signs webhook payloads)
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_timeout_seconds: float = 15.0

    # Money
    currency: str = "NGN"
    currency_subunits: int = 100  # kobo per naira
    platform_fee_rate: Decimal = Decimal("0.03")
    payout_reason_prefix: str = "CamPulse order"

    # Reconciliation of abandoned checkouts
    pending_payment_expiry_minutes: int = 60

    # Internal/admin endpoints (payout, cancel, refund); unset disables the check
    admin_api_key: Optional[str] = None

    # CORS - loaded from environment
    allowed_origins: str = "*"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_file: bool = False
    log_file_path: str = "logs/campulse.log"
    log_max_size_mb: int = 10
    log_backup_count: int = 5
    log_to_console: bool = True
    log_verbosity: str = "minimal"  # "minimal" or "full" - full also echoes SQL

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
