# app/payments/model.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

PaymentStatus = Literal["pending", "success", "failed"]

PENDING: PaymentStatus = "pending"
SUCCESS: PaymentStatus = "success"
FAILED: PaymentStatus = "failed"

TERMINAL_STATUSES = (SUCCESS, FAILED)


@dataclass(frozen=True)
class PaymentRecord:
    public_id: str
    checkout_request_id: str
    phone: str
    amount: int
    status: PaymentStatus = PENDING
    result_code: Optional[int] = None
    result_desc: Optional[str] = None
    mpesa_receipt_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CallbackOutcome:
    """
    Parsed form of Daraja's Body.stkCallback envelope.
    """

    checkout_request_id: str
    result_code: int
    result_desc: Optional[str] = None
    mpesa_receipt_number: Optional[str] = None

    @property
    def status(self) -> PaymentStatus:
        return SUCCESS if self.result_code == 0 else FAILED
