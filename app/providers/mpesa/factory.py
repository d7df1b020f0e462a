# app/providers/mpesa/factory.py
from __future__ import annotations

from typing import Any, Dict

from app.providers.mpesa.config import mpesa_config
from settings import Settings, settings as default_settings

_PROVIDER_CACHE: Dict[str, Any] = {}


def get_stk_provider(s: Settings | None = None):
    """
    One provider per mode, so the Daraja token cache survives across requests.
    """
    cfg = mpesa_config(s or default_settings)
    key = cfg.mode

    if key in _PROVIDER_CACHE:
        return _PROVIDER_CACHE[key]

    if key == "mock":
        from app.providers.mock import MockStkProvider
        provider = MockStkProvider()
    else:
        from app.providers.mpesa.daraja import DarajaProvider
        provider = DarajaProvider(cfg)

    _PROVIDER_CACHE[key] = provider
    return provider


def reset_provider_cache() -> None:
    _PROVIDER_CACHE.clear()
