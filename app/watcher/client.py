# app/watcher/client.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger("stkpay.watcher")

GENERIC_ERROR = "Something went wrong"


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _server_error_message(resp: httpx.Response) -> Optional[str]:
    try:
        payload = resp.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("error") or payload.get("detail")
    return str(message) if message else None


def describe_error(exc: BaseException) -> str:
    """
    Most specific message available: server error body, then transport message, then generic.
    """
    if isinstance(exc, ApiError):
        return exc.message or GENERIC_ERROR
    if isinstance(exc, httpx.HTTPStatusError):
        return _server_error_message(exc.response) or str(exc) or GENERIC_ERROR
    return str(exc) or GENERIC_ERROR


class StkApiClient:
    """
    Client for this service's HTTP API: initiation, viewer sessions and status reads.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        http: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(base_url=self.base_url, timeout=timeout_s, transport=transport)
        self._token: Optional[str] = None
        self._token_public_id: Optional[str] = None

    def close(self) -> None:
        self._http.close()

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        message = _server_error_message(resp) or f"HTTP {resp.status_code}"
        raise ApiError(message, status_code=resp.status_code)

    def initiate(self, *, phone: str, amount: Any) -> str:
        try:
            resp = self._http.post("/initiate", json={"phone": phone, "amount": amount})
        except httpx.HTTPError as e:
            raise ApiError(describe_error(e)) from e

        self._raise_for_status(resp)
        public_id = (resp.json() or {}).get("public_id")
        if not public_id:
            raise ApiError("Missing payment ID from server", status_code=resp.status_code)
        return str(public_id)

    def create_session(self, public_id: str) -> str:
        resp = self._http.post("/session", json={"public_id": public_id})
        self._raise_for_status(resp)
        self._token = resp.json()["access_token"]
        self._token_public_id = public_id
        return self._token

    def _read_payment(self, public_id: str) -> httpx.Response:
        return self._http.get(
            f"/payments/{public_id}",
            headers={"Authorization": f"Bearer {self._token}"},
        )

    def get_status(self, public_id: str) -> Optional[str]:
        if not self._token or self._token_public_id != public_id:
            self.create_session(public_id)

        resp = self._read_payment(public_id)
        if resp.status_code == 401:
            # viewer sessions expire after VIEWER_SESSION_MINUTES; a watch can outlive one
            logger.info("viewer_session_refresh public_id=%s", public_id)
            self.create_session(public_id)
            resp = self._read_payment(public_id)

        if resp.status_code == 404:
            return None
        self._raise_for_status(resp)
        return resp.json().get("status")
