# app/providers/mpesa/daraja.py
from __future__ import annotations

import base64
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from app.payments.errors import UpstreamAuthError, UpstreamRejected
from app.providers.base import StkProvider, StkPushResult
from app.providers.mpesa.config import MpesaConfig
from app.providers.mpesa.http import HttpClient
from services.redaction import redact_text

logger = logging.getLogger("stkpay.mpesa")

TOKEN_SAFETY_BUFFER_S = 60
DEFAULT_TOKEN_TTL_S = 3599


def daraja_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S")


def daraja_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """
    Daraja's "password" is a plain base64 encoding, not a signature.
    """
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode()


class DarajaProvider(StkProvider):
    def __init__(
        self,
        config: MpesaConfig,
        http: Optional[HttpClient] = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.http = http or HttpClient(timeout_s=config.timeout_s)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token: Optional[str] = None
        self._token_exp: float = 0.0
        self._token_lock = threading.Lock()

    def stk_push(self, *, phone: str, amount: int, public_id: str) -> StkPushResult:
        cfg = self.config
        token = self.get_access_token()

        timestamp = daraja_timestamp(self._clock())
        body = {
            "BusinessShortCode": cfg.shortcode,
            "Password": daraja_password(cfg.shortcode, cfg.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": cfg.transaction_type,
            "Amount": int(amount),
            "PartyA": phone,
            "PartyB": cfg.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": cfg.callback_url_for(public_id),
            "AccountReference": cfg.account_reference,
            "TransactionDesc": cfg.transaction_desc,
        }
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        try:
            resp = self.http.post(cfg.stk_push_url, headers=headers, json_body=body, debug=True)
        except httpx.HTTPError as e:
            logger.error("stk_push_unreachable public_id=%s error=%s", public_id, type(e).__name__)
            raise UpstreamRejected("Failed to reach Safaricom STK push endpoint", status_code=500) from e

        payload = resp.json or {}
        checkout_request_id = payload.get("CheckoutRequestID")

        logger.info(
            "stk_push_response public_id=%s phone=%s http_status=%s response_code=%s accepted=%s",
            public_id,
            redact_text(phone),
            resp.status_code,
            payload.get("ResponseCode"),
            bool(checkout_request_id),
        )

        # Rejections often arrive as a body without CheckoutRequestID rather than an HTTP error
        if not checkout_request_id:
            raise UpstreamRejected(payload.get("errorMessage") or None)

        return StkPushResult(
            checkout_request_id=str(checkout_request_id),
            merchant_request_id=payload.get("MerchantRequestID"),
            customer_message=payload.get("CustomerMessage"),
            response=payload,
        )

    def get_access_token(self) -> str:
        with self._token_lock:
            now = time.time()
            if self._token and now < (self._token_exp - TOKEN_SAFETY_BUFFER_S):
                return self._token

            cfg = self.config
            basic = base64.b64encode(f"{cfg.consumer_key}:{cfg.consumer_secret}".encode()).decode()
            headers = {"Authorization": f"Basic {basic}"}

            try:
                resp = self.http.get(
                    cfg.token_url,
                    headers=headers,
                    params={"grant_type": "client_credentials"},
                    debug=True,
                )
            except httpx.HTTPError as e:
                logger.error("mpesa_token_unreachable error=%s", type(e).__name__)
                raise UpstreamAuthError() from e

            token = (resp.json or {}).get("access_token") if resp.ok else None
            if not token:
                logger.error("mpesa_token_rejected http_status=%s", resp.status_code)
                raise UpstreamAuthError()

            try:
                expires_in = int((resp.json or {}).get("expires_in") or DEFAULT_TOKEN_TTL_S)
            except (TypeError, ValueError):
                expires_in = DEFAULT_TOKEN_TTL_S

            self._token = str(token)
            self._token_exp = now + max(0, expires_in)
            return self._token
