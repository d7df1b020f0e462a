import logging

from services.redaction import redact_dict, redact_text
from tests.conftest import stk_callback_body


def test_redact_text_masks_phone_and_email():
    text = "payer jane@example.com phone 254712345678"
    redacted = redact_text(text)
    assert "jane@example.com" not in redacted
    assert "254712345678" not in redacted
    assert "j***@example.com" in redacted
    assert "254712****78" in redacted


def test_redact_text_masks_tokens():
    assert redact_text("Authorization Bearer abcdef") == "[REDACTED]"
    assert redact_text('{"access_token": "abc"}') == "[REDACTED]"


def test_redact_text_leaves_checkout_ids_alone():
    text = "checkout_request_id=ws_CO_191220191020363925"
    assert redact_text(text) == text


def test_redact_dict_masks_daraja_secrets():
    payload = {
        "BusinessShortCode": "174379",
        "Password": "MTc0Mzc5YmZiMjc5Zjlh",
        "PhoneNumber": "254712345678",
        "Authorization": "Bearer abc",
        "consumer_key": "ck",
        "passkey": "pk",
        "nested": {"access_token": "abc", "PartyA": "+254712345678"},
    }
    redacted = redact_dict(payload)
    assert redacted["BusinessShortCode"] == "174379"
    assert redacted["Password"] == "[REDACTED]"
    assert redacted["PhoneNumber"] == "254712****78"
    assert redacted["Authorization"] == "[REDACTED]"
    assert redacted["consumer_key"] == "[REDACTED]"
    assert redacted["passkey"] == "[REDACTED]"
    assert redacted["nested"]["access_token"] == "[REDACTED]"
    assert redacted["nested"]["PartyA"] == "+25471****78"


def test_redact_dict_masks_integer_msisdn_but_not_amounts():
    item = {"Name": "PhoneNumber", "Value": 254712345678}
    assert redact_dict(item)["Value"] == "254712****78"
    assert redact_dict({"Name": "Amount", "Value": 50})["Value"] == 50
    assert redact_dict({"ok": True})["ok"] is True


def test_callback_debug_log_masks_payer_phone(client, caplog):
    with caplog.at_level(logging.DEBUG, logger="stkpay.callback"):
        client.post("/callback?public_id=abc", json=stk_callback_body(0))

    assert "callback_received" in caplog.text
    assert "254712345678" not in caplog.text


def test_log_line_uses_redaction_helper(caplog):
    logger = logging.getLogger("redaction-test")
    caplog.set_level(logging.INFO)
    msg = redact_text("email jane@example.com phone +254712345678")
    logger.info("payload=%s", msg)
    assert "jane@example.com" not in caplog.text
    assert "+254712345678" not in caplog.text
