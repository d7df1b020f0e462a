# app/payments/validate.py
from __future__ import annotations

import math
import re
from typing import Any

from app.payments.errors import ValidationError

PHONE_RE = re.compile(r"^(?:254|\+254|0)\d{9}$")
MIN_AMOUNT_KES = 1
# Daraja per-transaction ceiling for STK push
MAX_AMOUNT_KES = 250_000


def normalize_phone(phone: str) -> str:
    """
    Accepts 07XXXXXXXX, 2547XXXXXXXX or +2547XXXXXXXX and returns the
    2547XXXXXXXX form Daraja expects for PartyA / PhoneNumber.
    """
    value = (phone or "").strip().replace(" ", "")
    if not PHONE_RE.match(value):
        raise ValidationError("Enter a valid Safaricom number")

    if value.startswith("0"):
        return "254" + value[1:]
    if value.startswith("+254"):
        return value[1:]
    return value


def normalize_amount(amount: Any) -> int:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number")

    if not math.isfinite(value) or value != int(value):
        raise ValidationError("Amount must be a whole number of KES")
    if int(value) < MIN_AMOUNT_KES:
        raise ValidationError("Amount must be at least 1 KES")
    if int(value) > MAX_AMOUNT_KES:
        raise ValidationError("Amount must be at most 250000 KES")
    return int(value)


def validate_initiation(phone: Any, amount: Any) -> tuple[str, int]:
    if phone is None or amount is None or (isinstance(phone, str) and not phone.strip()):
        raise ValidationError("Missing phone or amount")
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a number")
    return normalize_phone(str(phone)), normalize_amount(amount)
