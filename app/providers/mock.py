# app/providers/mock.py
from __future__ import annotations

import uuid
from typing import Optional

from app.payments.errors import UpstreamAuthError, UpstreamRejected
from app.providers.base import StkPushResult


class MockStkProvider:
    """
    Dev provider selected by MPESA_MODE=mock; never touches the network.

    Drive the callback yourself (scripts/simulate_callback.py) to move a
    payment out of pending.
    """

    def __init__(
        self,
        *,
        succeed: bool = True,
        auth_ok: bool = True,
        error_message: Optional[str] = None,
    ):
        self.succeed = succeed
        self.auth_ok = auth_ok
        self.error_message = error_message
        self.pushes: list[dict] = []

    def stk_push(self, *, phone: str, amount: int, public_id: str) -> StkPushResult:
        if not self.auth_ok:
            raise UpstreamAuthError()

        self.pushes.append({"phone": phone, "amount": amount, "public_id": public_id})
        if not self.succeed:
            raise UpstreamRejected(self.error_message)

        checkout_request_id = f"ws_CO_mock_{uuid.uuid4().hex[:16]}"
        return StkPushResult(
            checkout_request_id=checkout_request_id,
            merchant_request_id=f"mock-{uuid.uuid4().hex[:8]}",
            customer_message="Success. Request accepted for processing",
            response={"ResponseCode": "0", "CheckoutRequestID": checkout_request_id, "mock": True},
        )
