from __future__ import annotations

import re
from typing import Any


_EMAIL_RE = re.compile(r"\b([A-Za-z0-9._%+-])([A-Za-z0-9._%+-]*)(@[A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
# MSISDNs with or without "+", but not digit runs embedded in ids like ws_CO_...
_PHONE_RE = re.compile(r"(?<![\w+])\+?\d{9,15}(?!\w)")

_SENSITIVE_KEY_MARKERS = (
    "token",
    "authorization",
    "secret",
    "password",
    "passkey",
    "consumer_key",
)

_SENSITIVE_TEXT_MARKERS = ("access_token", "refresh_token", "bearer")

REDACTED = "[REDACTED]"


def mask_phone(value: str) -> str:
    """
    254712345678 -> 254712****78
    """
    if len(value) <= 8:
        return value
    return f"{value[:6]}****{value[-2:]}"


def _mask_email(match: re.Match) -> str:
    return f"{match.group(1)}***{match.group(3)}"


def redact_text(value: str) -> str:
    if any(marker in value.lower() for marker in _SENSITIVE_TEXT_MARKERS):
        return REDACTED

    masked = _EMAIL_RE.sub(_mask_email, value)
    return _PHONE_RE.sub(lambda m: mask_phone(m.group(0)), masked)


def _is_sensitive_key(key: str) -> bool:
    key_l = (key or "").lower()
    return any(marker in key_l for marker in _SENSITIVE_KEY_MARKERS)


def redact_value(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return redact_text(value)
    # Daraja sends PhoneNumber in CallbackMetadata as a bare integer
    if isinstance(value, int) and 9 <= len(str(abs(value))) <= 15:
        return mask_phone(str(value))
    if isinstance(value, dict):
        return redact_dict(value)
    if isinstance(value, list):
        return [redact_value(v) for v in value]
    return value


def redact_dict(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        k: REDACTED if _is_sensitive_key(k) else redact_value(v)
        for k, v in payload.items()
    }
