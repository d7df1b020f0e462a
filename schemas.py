# schemas.py
from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional, Literal

PaymentStatusName = Literal["pending", "success", "failed"]


# -------- STK PUSH --------
class InitiateRequest(BaseModel):
    # presence is checked by the initiator so a missing field is a 400, not a 422
    phone: Optional[str] = None
    amount: Optional[float] = None


class InitiateResponse(BaseModel):
    public_id: str


class CallbackAck(BaseModel):
    ResultCode: int
    ResultDesc: str


class ErrorResponse(BaseModel):
    error: str


# -------- VIEWER SESSIONS --------
class SessionRequest(BaseModel):
    public_id: str = Field(min_length=1, max_length=64)


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    public_id: str
    expires_in: int


class PaymentStatusResponse(BaseModel):
    public_id: str
    status: PaymentStatusName
