# tests/conftest.py

from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from app.payments.errors import PersistenceError
from app.payments.model import PENDING, CallbackOutcome
from app.providers.mock import MockStkProvider
from deps.payments import get_payment_store, get_provider
from main import create_app
from services.metrics import reset_metrics


class FakeStore:
    """
    In-memory stand-in for PgPaymentStore with the same overwrite semantics.
    """

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fail_insert = False
        self.fail_update = False
        self.fail_read = False

    def insert_pending(self, *, public_id: str, checkout_request_id: str, phone: str, amount: int) -> None:
        if self.fail_insert:
            raise PersistenceError("DB insert failed")
        self.rows[public_id] = {
            "public_id": public_id,
            "checkout_request_id": checkout_request_id,
            "phone": phone,
            "amount": amount,
            "status": PENDING,
            "result_code": None,
            "result_desc": None,
            "mpesa_receipt_number": None,
        }

    def apply_callback(self, *, public_id: str, outcome: CallbackOutcome):
        if self.fail_update:
            raise PersistenceError("Failed to update payment")
        row = self.rows.get(public_id)
        if row is None:
            return False, None
        before = row["status"]
        row.update(
            status=outcome.status,
            result_code=outcome.result_code,
            result_desc=outcome.result_desc,
            mpesa_receipt_number=outcome.mpesa_receipt_number or row["mpesa_receipt_number"],
        )
        return True, before

    def get_status(self, *, public_id: str) -> Optional[str]:
        if self.fail_read:
            raise PersistenceError("Failed to fetch payment status")
        row = self.rows.get(public_id)
        return row["status"] if row else None


def seed_payment(store: FakeStore, public_id: str, status: str = PENDING) -> None:
    store.insert_pending(
        public_id=public_id,
        checkout_request_id=f"ws_CO_{public_id}",
        phone="254712345678",
        amount=50,
    )
    store.rows[public_id]["status"] = status


def stk_callback_body(result_code: Any = 0, checkout_request_id: str = "ws_CO_123", receipt: str | None = "QWE123ABC") -> dict:
    callback: Dict[str, Any] = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
    }
    if result_code == 0 and receipt:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": 50},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    return {"Body": {"stkCallback": callback}}


# ---------------------------
# App + Client
# ---------------------------

@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_metrics()
    yield


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def provider() -> MockStkProvider:
    return MockStkProvider()


@pytest.fixture()
def app(store: FakeStore, provider: MockStkProvider):
    app = create_app()
    app.dependency_overrides[get_payment_store] = lambda: store
    app.dependency_overrides[get_provider] = lambda: provider
    return app


@pytest.fixture()
def client(app) -> TestClient:
    # Needed so tests can assert 500s instead of pytest re-raising server exceptions
    return TestClient(app, raise_server_exceptions=False)
