# settings.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal


DEV_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    ENV: Literal["dev", "staging", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"

    # -----------------------
    # DB (hosted Postgres)
    # -----------------------
    # privileged connection used by the API (owner role, bypasses RLS)
    DATABASE_URL: str = Field(default="")
    # restricted connection used by viewers (RLS applies)
    DATABASE_PUBLIC_URL: str = Field(default="")
    STATUS_NOTIFY_CHANNEL: str = "stk_payment_status"

    # -----------------------
    # Viewer sessions (JWT)
    # -----------------------
    JWT_SECRET: str = Field(default=DEV_JWT_SECRET, min_length=16)
    JWT_ALG: str = Field(default="HS256")
    VIEWER_SESSION_MINUTES: int = Field(default=30)

    # -----------------------
    # M-Pesa Daraja (Mode Switch)
    # -----------------------
    MPESA_MODE: Literal["sandbox", "real", "mock"] = "sandbox"
    MPESA_STRICT_STARTUP_VALIDATION: bool = False
    MPESA_HTTP_TIMEOUT_S: float = 20.0

    MPESA_SANDBOX_BASE_URL: str = "https://sandbox.safaricom.co.ke"
    MPESA_REAL_BASE_URL: str = "https://api.safaricom.co.ke"

    MPESA_CONSUMER_KEY: str = ""
    MPESA_CONSUMER_SECRET: str = ""
    MPESA_SHORTCODE: str = ""
    MPESA_PASSKEY: str = ""
    MPESA_CALLBACK_URL: str = ""

    MPESA_TRANSACTION_TYPE: str = "CustomerPayBillOnline"
    MPESA_ACCOUNT_REFERENCE: str = "Li's Chinese Restaurant"
    MPESA_TRANSACTION_DESC: str = "Payment test"


def validate_env_settings(current: Settings | None = None) -> None:
    """
    Fail fast outside dev when required secrets are missing or left at dev defaults.
    """
    s = current or settings
    env = (s.ENV or "dev").strip().lower()
    if env == "dev":
        return

    missing: list[str] = []
    if not (s.DATABASE_URL or "").strip():
        missing.append("DATABASE_URL")
    if (s.JWT_SECRET or "") == DEV_JWT_SECRET or len(s.JWT_SECRET or "") < 32:
        missing.append("JWT_SECRET")
    if (s.MPESA_MODE or "").strip().lower() != "mock":
        for name in (
            "MPESA_CONSUMER_KEY",
            "MPESA_CONSUMER_SECRET",
            "MPESA_SHORTCODE",
            "MPESA_PASSKEY",
            "MPESA_CALLBACK_URL",
        ):
            if not (getattr(s, name, "") or "").strip():
                missing.append(name)

    if missing:
        raise RuntimeError(
            f"Settings validation failed for ENV={env}. "
            "Missing or insecure settings: " + ", ".join(missing)
        )


settings = Settings()
