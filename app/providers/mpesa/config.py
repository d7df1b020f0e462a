# app/providers/mpesa/config.py
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from settings import Settings, settings as default_settings


def mpesa_mode(s: Settings | None = None) -> str:
    s = s or default_settings
    return (s.MPESA_MODE or "sandbox").strip().lower()


def is_strict_startup_validation(s: Settings | None = None) -> bool:
    s = s or default_settings
    return bool(s.MPESA_STRICT_STARTUP_VALIDATION)


@dataclass(frozen=True)
class MpesaConfig:
    mode: str  # "sandbox" | "real" | "mock"
    base_url: str
    consumer_key: str
    consumer_secret: str
    shortcode: str
    passkey: str
    callback_url: str
    transaction_type: str = "CustomerPayBillOnline"
    account_reference: str = "Li's Chinese Restaurant"
    transaction_desc: str = "Payment test"
    timeout_s: float = 20.0

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/v1/generate"

    @property
    def stk_push_url(self) -> str:
        return f"{self.base_url}/mpesa/stkpush/v1/processrequest"

    def callback_url_for(self, public_id: str) -> str:
        """
        The public id rides on the callback URL so the provider's async
        callback can be tied back to the originating request.
        """
        parts = urlsplit(self.callback_url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "public_id"]
        query.append(("public_id", public_id))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def mpesa_config(s: Settings | None = None) -> MpesaConfig:
    s = s or default_settings
    mode = mpesa_mode(s)
    base = s.MPESA_REAL_BASE_URL if mode == "real" else s.MPESA_SANDBOX_BASE_URL

    return MpesaConfig(
        mode=mode,
        base_url=(base or "").strip().rstrip("/"),
        consumer_key=(s.MPESA_CONSUMER_KEY or "").strip(),
        consumer_secret=(s.MPESA_CONSUMER_SECRET or "").strip(),
        shortcode=(s.MPESA_SHORTCODE or "").strip(),
        passkey=(s.MPESA_PASSKEY or "").strip(),
        callback_url=(s.MPESA_CALLBACK_URL or "").strip(),
        transaction_type=(s.MPESA_TRANSACTION_TYPE or "CustomerPayBillOnline").strip(),
        account_reference=s.MPESA_ACCOUNT_REFERENCE or "",
        transaction_desc=s.MPESA_TRANSACTION_DESC or "",
        timeout_s=float(s.MPESA_HTTP_TIMEOUT_S or 20.0),
    )
