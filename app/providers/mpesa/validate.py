# app/providers/mpesa/validate.py
from __future__ import annotations

import logging
from typing import Iterable

from app.providers.mpesa.config import is_strict_startup_validation, mpesa_mode
from settings import Settings, settings as default_settings

logger = logging.getLogger("stkpay")

ALLOWED_MODES = ("sandbox", "real", "mock")

REQUIRED_SETTINGS = (
    "MPESA_CONSUMER_KEY",
    "MPESA_CONSUMER_SECRET",
    "MPESA_SHORTCODE",
    "MPESA_PASSKEY",
    "MPESA_CALLBACK_URL",
)


def _sorted_csv(items: Iterable[str]) -> str:
    return ", ".join(sorted(set(items)))


def validate_mpesa_startup(s: Settings | None = None) -> None:
    """
    Fail-fast validation.

    Rules:
      - mock: nothing to check
      - sandbox: validate ONLY if MPESA_STRICT_STARTUP_VALIDATION=1
      - real: always validate
      - raise RuntimeError listing missing settings
    """
    s = s or default_settings
    mode = mpesa_mode(s)
    strict = is_strict_startup_validation(s)

    logger.info("mpesa startup check: mode=%s strict=%s", mode, strict)

    if mode not in ALLOWED_MODES:
        raise RuntimeError(
            "M-Pesa startup validation failed. "
            f"Invalid MPESA_MODE={mode!r}. Allowed: {_sorted_csv(ALLOWED_MODES)}"
        )

    if mode == "mock" or (mode == "sandbox" and not strict):
        return

    missing = [name for name in REQUIRED_SETTINGS if not (getattr(s, name, "") or "").strip()]

    base_name = "MPESA_REAL_BASE_URL" if mode == "real" else "MPESA_SANDBOX_BASE_URL"
    if not (getattr(s, base_name, "") or "").strip():
        missing.append(base_name)

    callback = (s.MPESA_CALLBACK_URL or "").strip()
    if callback and not callback.lower().startswith("https://"):
        raise RuntimeError(
            "M-Pesa startup validation failed. MPESA_CALLBACK_URL must be a public https URL."
        )

    if missing:
        raise RuntimeError(
            "M-Pesa startup validation failed. "
            f"mode={mode} Missing required settings: " + _sorted_csv(missing)
        )
