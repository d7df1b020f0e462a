# tests/test_stk_initiate.py

import uuid

from app.providers.mock import MockStkProvider
from deps.payments import get_provider
from services.metrics import get_counter


def test_initiate_returns_public_id_and_records_pending(client, store, provider):
    r = client.post("/initiate", json={"phone": "0712345678", "amount": 50})
    assert r.status_code == 200, r.text

    public_id = r.json()["public_id"]
    uuid.UUID(public_id)

    row = store.rows[public_id]
    assert row["status"] == "pending"
    assert row["phone"] == "254712345678"
    assert row["amount"] == 50
    assert row["checkout_request_id"].startswith("ws_CO_mock_")

    assert provider.pushes == [{"phone": "254712345678", "amount": 50, "public_id": public_id}]
    assert get_counter("stk_initiations_total", {"result": "pending"}) == 1


def test_initiate_accepts_plus_prefixed_phone_and_numeric_string_amount(client, store):
    r = client.post("/initiate", json={"phone": "+254712345678", "amount": "10"})
    assert r.status_code == 200, r.text
    assert store.rows[r.json()["public_id"]]["phone"] == "254712345678"


def test_initiate_missing_fields_is_400(client, store, provider):
    r = client.post("/initiate", json={"phone": "0712345678"})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing phone or amount"}

    r = client.post("/initiate", json={"amount": 10})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing phone or amount"}

    assert provider.pushes == []
    assert store.rows == {}


def test_initiate_invalid_phone_is_400(client, provider):
    r = client.post("/initiate", json={"phone": "12345", "amount": 10})
    assert r.status_code == 400
    assert r.json() == {"error": "Enter a valid Safaricom number"}
    assert provider.pushes == []


def test_initiate_fractional_or_zero_amount_is_400(client):
    r = client.post("/initiate", json={"phone": "0712345678", "amount": 1.5})
    assert r.status_code == 400
    assert r.json() == {"error": "Amount must be a whole number of KES"}

    r = client.post("/initiate", json={"phone": "0712345678", "amount": 0})
    assert r.status_code == 400
    assert r.json() == {"error": "Amount must be at least 1 KES"}


def test_initiate_non_numeric_amount_is_400(client):
    r = client.post("/initiate", json={"phone": "0712345678", "amount": "lots"})
    assert r.status_code == 400
    assert r.json()["error"].startswith("amount:")


def test_initiate_amount_over_limit_is_400_without_push(client, store, provider):
    r = client.post("/initiate", json={"phone": "0712345678", "amount": 3_000_000_000})
    assert r.status_code == 400
    assert r.json() == {"error": "Amount must be at most 250000 KES"}

    assert provider.pushes == []
    assert store.rows == {}


def test_initiate_upstream_auth_failure_is_500(app, client, store):
    app.dependency_overrides[get_provider] = lambda: MockStkProvider(auth_ok=False)

    r = client.post("/initiate", json={"phone": "0712345678", "amount": 10})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to get access token from Safaricom"}
    assert store.rows == {}
    assert get_counter("stk_initiations_total", {"result": "upstream_error"}) == 1


def test_initiate_upstream_rejection_is_400_with_provider_message(app, client, store):
    app.dependency_overrides[get_provider] = lambda: MockStkProvider(
        succeed=False, error_message="Invalid PhoneNumber"
    )

    r = client.post("/initiate", json={"phone": "0712345678", "amount": 10})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid PhoneNumber"}
    assert store.rows == {}


def test_initiate_upstream_rejection_without_message_uses_default(app, client):
    app.dependency_overrides[get_provider] = lambda: MockStkProvider(succeed=False)

    r = client.post("/initiate", json={"phone": "0712345678", "amount": 10})
    assert r.status_code == 400
    assert r.json() == {"error": "Safaricom did not return CheckoutRequestID"}


def test_initiate_insert_failure_after_push_is_500(client, store, provider, caplog):
    store.fail_insert = True

    with caplog.at_level("ERROR", logger="stkpay.stk"):
        r = client.post("/initiate", json={"phone": "0712345678", "amount": 10})

    assert r.status_code == 500
    assert r.json() == {"error": "DB insert failed"}
    assert len(provider.pushes) == 1
    assert any("stk_insert_failed_after_push" in rec.getMessage() for rec in caplog.records)
    assert get_counter("stk_initiations_total", {"result": "persistence_error"}) == 1


def test_initiate_logs_redacted_phone(client, caplog):
    with caplog.at_level("INFO", logger="stkpay.stk"):
        r = client.post("/initiate", json={"phone": "0712345678", "amount": 10})
    assert r.status_code == 200

    messages = " ".join(rec.getMessage() for rec in caplog.records)
    assert "stk_initiate" in messages
    assert "254712345678" not in messages
