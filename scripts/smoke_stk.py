"""
Initiate an STK push against a running instance and poll it to a terminal status.

Usage:
  API_BASE_URL=http://localhost:8000 python scripts/smoke_stk.py 0712345678 1
"""
import os
import sys
import time

import requests


TERMINAL = ("success", "failed")


def die(message, code=1):
    print(message)
    sys.exit(code)


def step(message):
    print("\n==> " + message)


def _safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return {}


def request(method, url, headers=None, json_body=None, allow_failure=False):
    try:
        resp = requests.request(method, url, headers=headers, json=json_body, timeout=30)
    except requests.RequestException as exc:
        die("Request failed: %s" % exc)
    if not (200 <= resp.status_code < 300) and not allow_failure:
        print("HTTP %s %s" % (resp.status_code, resp.reason))
        print(_safe_json(resp).get("error") or resp.text)
        sys.exit(1)
    return resp


def main():
    if len(sys.argv) < 3:
        die("usage: smoke_stk.py <phone> <amount>", code=2)

    base = (os.getenv("API_BASE_URL") or "http://localhost:8000").rstrip("/")
    phone, amount = sys.argv[1], int(sys.argv[2])
    poll_s = float(os.getenv("POLL_INTERVAL_S", "3"))
    max_wait_s = float(os.getenv("MAX_WAIT_S", "180"))

    step("POST /initiate")
    public_id = _safe_json(request("POST", base + "/initiate", json_body={"phone": phone, "amount": amount})).get("public_id")
    if not public_id:
        die("Missing payment ID from server")
    print("public_id=%s" % public_id)

    step("POST /session")
    token = _safe_json(request("POST", base + "/session", json_body={"public_id": public_id}))["access_token"]
    headers = {"Authorization": "Bearer %s" % token}

    step("Waiting for callback (check the phone)")
    deadline = time.time() + max_wait_s
    status = None
    while time.time() < deadline:
        status = _safe_json(request("GET", "%s/payments/%s" % (base, public_id), headers=headers)).get("status")
        print("status=%s" % status)
        if status in TERMINAL:
            break
        time.sleep(poll_s)

    if status not in TERMINAL:
        die("No callback within %ss; payment still %s" % (int(max_wait_s), status))
    print("\nDone: %s" % status)
    sys.exit(0 if status == "success" else 1)


if __name__ == "__main__":
    main()
