"""
Post a Daraja-shaped STK callback to a local instance (MPESA_MODE=mock).

Usage:
  python scripts/simulate_callback.py <public_id> [result_code]
  result_code 0 = success, 1032 = cancelled by user
"""
import json
import os
import sys
import uuid

import requests


def build_callback(result_code, amount=1, phone="254712345678"):
    callback = {
        "MerchantRequestID": "mock-" + uuid.uuid4().hex[:8],
        "CheckoutRequestID": "ws_CO_mock_" + uuid.uuid4().hex[:16],
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": "MOCK" + uuid.uuid4().hex[:6].upper()},
                {"Name": "PhoneNumber", "Value": int(phone)},
            ]
        }
    return {"Body": {"stkCallback": callback}}


def main():
    if len(sys.argv) < 2:
        print("usage: simulate_callback.py <public_id> [result_code]")
        sys.exit(2)

    base = (os.getenv("API_BASE_URL") or "http://localhost:8000").rstrip("/")
    public_id = sys.argv[1]
    result_code = int(sys.argv[2]) if len(sys.argv) > 2 else 0

    resp = requests.post(
        base + "/callback",
        params={"public_id": public_id},
        json=build_callback(result_code),
        timeout=30,
    )
    print("HTTP %s" % resp.status_code)
    try:
        print(json.dumps(resp.json(), indent=2))
    except ValueError:
        print(resp.text)
    sys.exit(0 if resp.status_code == 200 else 1)


if __name__ == "__main__":
    main()
