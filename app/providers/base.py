# app/providers/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class StkPushResult:
    checkout_request_id: str
    merchant_request_id: Optional[str] = None
    customer_message: Optional[str] = None
    response: Optional[dict[str, Any]] = None


class StkProvider(Protocol):
    def stk_push(self, *, phone: str, amount: int, public_id: str) -> StkPushResult:
        """
        Raises UpstreamAuthError when no access token can be obtained and
        UpstreamRejected when the push is not accepted.
        """
        ...
