"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup, so a malformed value fails fast with a clear error message.

Usage:
    from afritokeni_ussd.config import get_settings
    settings = get_settings()
    print(settings.session_timeout_seconds)
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the AfriTokeni USSD service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # --- Database (metadata store) ---
    database_url: str = "sqlite+aiosqlite:///./afritokeni.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Redis ---
    redis_url: str = "redis://localhost:6379/0"
    session_backend: Literal["memory", "redis"] = "memory"

    # --- USSD sessions ---
    session_timeout_seconds: int = 180
    session_sweep_interval_seconds: int = 60
    default_language: Literal["en", "lg", "sw"] = "en"

    # --- Registration codes ---
    verification_code_ttl_seconds: int = 600
    verification_max_attempts: int = 3

    # --- PIN gate ---
    pin_max_attempts: int = 3
    pin_lockout_threshold: int = 5
    pin_lockout_minutes: int = 30

    # --- Escrow ---
    escrow_timeout_hours: int = 24
    agent_default_commission_rate: Decimal = Decimal("0.02")
    escrow_principal: str = "afritokeni-escrow"
    fee_principal: str = "afritokeni-fees"

    # --- Fees & limits (local currency units) ---
    transfer_fee_rate: Decimal = Decimal("0.01")
    exchange_fee_rate: Decimal = Decimal("0.025")
    deposit_min_amount: Decimal = Decimal("1000")
    deposit_max_amount: Decimal = Decimal("5000000")
    withdraw_min_amount: Decimal = Decimal("1000")
    withdraw_max_amount: Decimal = Decimal("2000000")
    buy_min_local_amount: Decimal = Decimal("10000")
    sell_min_local_amount: Decimal = Decimal("1000")
    withdrawal_code_ttl_hours: int = 24
    agent_choices_shown: int = 2
    agent_lookup_limit: int = 5

    # --- SMS gateway ---
    sms_backend: Literal["log", "africastalking"] = "log"
    africastalking_username: str = "sandbox"
    africastalking_api_key: str = ""
    africastalking_sender_id: str = ""
    africastalking_base_url: str = "https://api.sandbox.africastalking.com"
    sms_timeout_seconds: float = 10.0

    # --- Ledger gateway ---
    ledger_backend: Literal["simulated", "http"] = "simulated"
    ledger_base_url: str = "http://localhost:8080"
    ledger_api_key: str = ""
    ledger_timeout_seconds: float = 15.0

    # --- Exchange rates ---
    btc_usd_rate: Decimal = Decimal("65000")
    usdc_usd_rate: Decimal = Decimal("1")
    usd_fx_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "UGX": Decimal("3700"),
            "KES": Decimal("129"),
            "NGN": Decimal("1550"),
            "GHS": Decimal("15"),
            "TZS": Decimal("2600"),
            "RWF": Decimal("1300"),
            "ZAR": Decimal("18.5"),
            "EGP": Decimal("48"),
            "ETB": Decimal("57"),
        }
    )

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
