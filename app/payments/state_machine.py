# app/payments/state_machine.py
from __future__ import annotations

from app.payments.model import FAILED, PENDING, SUCCESS, TERMINAL_STATUSES, PaymentStatus


ALLOWED = {
    PENDING: {SUCCESS, FAILED},
    SUCCESS: set(),
    FAILED: set(),
}


def is_terminal(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


def status_for_result_code(result_code: int) -> PaymentStatus:
    return SUCCESS if result_code == 0 else FAILED


def is_allowed_transition(old: str | None, new: str) -> bool:
    """
    Advisory only: callbacks are applied even when this returns False.
    """
    return new in ALLOWED.get(old or PENDING, set())
