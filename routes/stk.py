# routes/stk.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.payments.errors import PaymentError
from app.payments.service import CallbackReceiver, StkInitiator, ack
from deps.payments import get_callback_receiver, get_initiator
from schemas import CallbackAck, ErrorResponse, InitiateRequest, InitiateResponse

router = APIRouter(tags=["stk"])
logger = logging.getLogger("stkpay.callback")


@router.post(
    "/initiate",
    response_model=InitiateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def initiate(body: InitiateRequest, initiator: StkInitiator = Depends(get_initiator)):
    public_id = initiator.initiate(phone=body.phone, amount=body.amount)
    return InitiateResponse(public_id=public_id)


@router.get("/callback")
def callback_active():
    return {"status": "Callback URL is active. Waiting for POST data."}


async def callback_body(req: Request) -> Any:
    """
    Raw callback JSON; None when it is absent or unreadable, which the receiver reports as malformed.
    """
    public_id = req.query_params.get("public_id")
    if not public_id:
        return None

    raw = await req.body()
    try:
        return json.loads(raw) if raw else None
    except ValueError:
        logger.error("callback_invalid_json public_id=%s", public_id)
        return None


@router.post(
    "/callback",
    response_model=CallbackAck,
    responses={400: {"model": CallbackAck}, 500: {"model": CallbackAck}},
)
def stk_callback(
    public_id: Optional[str] = None,
    body: Any = Depends(callback_body),
    receiver: CallbackReceiver = Depends(get_callback_receiver),
):
    # Daraja expects its acknowledgment shape on every path, errors included
    try:
        return receiver.receive(public_id=public_id, body=body)
    except PaymentError as e:
        return JSONResponse(status_code=e.status_code, content=ack(1, e.message))
