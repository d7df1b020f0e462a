# app/payments/service.py
from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Optional

from app.payments.errors import MalformedCallback, MissingCorrelationId, PersistenceError
from app.payments.model import CallbackOutcome
from app.payments.state_machine import is_allowed_transition, is_terminal
from app.payments.store import PaymentStore
from app.payments.validate import validate_initiation
from app.providers.base import StkProvider
from services.metrics import increment_stk_callback, increment_stk_initiation
from services.redaction import redact_text, redact_value

logger = logging.getLogger("stkpay.stk")
callback_logger = logging.getLogger("stkpay.callback")

ACK_ACCEPT = {"ResultCode": 0, "ResultDesc": "Accept"}


def ack(result_code: int, desc: str) -> dict[str, Any]:
    return {"ResultCode": result_code, "ResultDesc": desc}


class StkInitiator:
    """
    Validates input, pushes the STK prompt and records the pending payment.

    The pending row is written before the caller gets its public_id back, so a
    callback (or a watcher) can never observe an id whose row does not exist yet.
    """

    def __init__(self, provider: StkProvider, store: PaymentStore):
        self.provider = provider
        self.store = store

    def initiate(self, *, phone: Any, amount: Any) -> str:
        phone_norm, amount_kes = validate_initiation(phone, amount)
        public_id = str(uuid.uuid4())

        logger.info(
            "stk_initiate public_id=%s phone=%s amount=%s",
            public_id,
            redact_text(phone_norm),
            amount_kes,
        )

        try:
            result = self.provider.stk_push(phone=phone_norm, amount=amount_kes, public_id=public_id)
        except Exception:
            increment_stk_initiation("upstream_error")
            raise

        try:
            self.store.insert_pending(
                public_id=public_id,
                checkout_request_id=result.checkout_request_id,
                phone=phone_norm,
                amount=amount_kes,
            )
        except PersistenceError:
            # provider accepted the push but no row exists; the callback will update nothing
            logger.error(
                "stk_insert_failed_after_push public_id=%s checkout_request_id=%s",
                public_id,
                result.checkout_request_id,
            )
            increment_stk_initiation("persistence_error")
            raise

        increment_stk_initiation("pending")
        logger.info(
            "stk_pending public_id=%s checkout_request_id=%s",
            public_id,
            result.checkout_request_id,
        )
        return public_id


def _receipt_number(callback: dict[str, Any]) -> Optional[str]:
    metadata = callback.get("CallbackMetadata")
    items = metadata.get("Item") if isinstance(metadata, dict) else None
    if not isinstance(items, list):
        return None
    for item in items:
        if isinstance(item, dict) and item.get("Name") == "MpesaReceiptNumber":
            value = item.get("Value")
            return str(value) if value is not None else None
    return None


def _result_code(raw: Any) -> int:
    # "0", 0 and 0.0 all mean success; 1.5 or "abc" mean nothing
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        raise MalformedCallback("Invalid ResultCode")
    if not math.isfinite(value) or value != int(value):
        raise MalformedCallback("Invalid ResultCode")
    return int(value)


def parse_stk_callback(body: Any) -> CallbackOutcome:
    """
    Extract Body.stkCallback from Daraja's callback envelope.
    """
    envelope = body.get("Body") if isinstance(body, dict) else None
    callback = envelope.get("stkCallback") if isinstance(envelope, dict) else None
    if not isinstance(callback, dict):
        raise MalformedCallback("Missing Body.stkCallback")

    checkout_request_id = callback.get("CheckoutRequestID")
    if not checkout_request_id:
        raise MalformedCallback("Missing CheckoutRequestID")

    raw_code = callback.get("ResultCode")
    if isinstance(raw_code, bool) or raw_code is None:
        raise MalformedCallback("Missing ResultCode")
    result_code = _result_code(raw_code)

    result_desc = callback.get("ResultDesc")
    return CallbackOutcome(
        checkout_request_id=str(checkout_request_id),
        result_code=result_code,
        result_desc=str(result_desc) if result_desc is not None else None,
        mpesa_receipt_number=_receipt_number(callback) if result_code == 0 else None,
    )


class CallbackReceiver:
    """
    Best-effort status sink for Daraja callbacks.

    Duplicate or out-of-order callbacks are applied as they come: the last one
    wins, even over a terminal status. Such overwrites are logged, not blocked.
    """

    def __init__(self, store: PaymentStore):
        self.store = store

    def receive(self, *, public_id: Optional[str], body: Any) -> dict[str, Any]:
        public_id = (public_id or "").strip()
        if not public_id:
            callback_logger.error("callback_missing_public_id")
            increment_stk_callback("missing_public_id")
            raise MissingCorrelationId()

        callback_logger.debug("callback_received public_id=%s body=%s", public_id, redact_value(body))

        try:
            outcome = parse_stk_callback(body)
        except MalformedCallback as e:
            callback_logger.error("callback_malformed public_id=%s reason=%s", public_id, e.message)
            increment_stk_callback("malformed")
            raise

        try:
            updated, status_before = self.store.apply_callback(public_id=public_id, outcome=outcome)
        except PersistenceError:
            callback_logger.error(
                "callback_update_failed public_id=%s checkout_request_id=%s status=%s",
                public_id,
                outcome.checkout_request_id,
                outcome.status,
            )
            increment_stk_callback("persistence_error")
            raise

        if not updated:
            callback_logger.warning(
                "callback_unknown_public_id public_id=%s checkout_request_id=%s",
                public_id,
                outcome.checkout_request_id,
            )
            increment_stk_callback("unknown_public_id")
            return dict(ACK_ACCEPT)

        if is_terminal(status_before) and not is_allowed_transition(status_before, outcome.status):
            callback_logger.warning(
                "callback_overwrote_terminal public_id=%s status_before=%s status_after=%s",
                public_id,
                status_before,
                outcome.status,
            )

        callback_logger.info(
            "callback_applied public_id=%s checkout_request_id=%s result_code=%s status=%s",
            public_id,
            outcome.checkout_request_id,
            outcome.result_code,
            outcome.status,
        )
        increment_stk_callback(outcome.status)
        return dict(ACK_ACCEPT)
