# scripts/watch_payment.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# project root on sys.path before importing app packages
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.watcher.client import StkApiClient
from app.watcher.flow import PaymentFlow
from app.watcher.sources import ApiStatusSource, DbStatusSource
from app.watcher.state import JsonFileIdStore
from app.watcher.watcher import PaymentWatcher, WatchError
from settings import settings


def _print_status(public_id: str, status: str) -> None:
    print(f"{public_id}: {status}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Pay with STK push and watch the result, or resume a previous watch.")
    parser.add_argument("--api", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--state-file", default=".stkpay/state.json")
    parser.add_argument("--direct-db", action="store_true", help="watch via DATABASE_PUBLIC_URL + LISTEN instead of polling the API")
    parser.add_argument("--poll-interval", type=float, default=2.0)
    parser.add_argument("--phone")
    parser.add_argument("--amount", type=int)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    client = StkApiClient(args.api)
    store = JsonFileIdStore(args.state_file)
    if args.direct_db:
        source = DbStatusSource(settings.DATABASE_PUBLIC_URL, channel=settings.STATUS_NOTIFY_CHANNEL)
    else:
        source = ApiStatusSource(client, poll_interval_s=args.poll_interval)
    watcher = PaymentWatcher(source, store, on_status=_print_status)

    try:
        if args.phone and args.amount:
            final = PaymentFlow(client, watcher, store).pay(phone=args.phone, amount=args.amount)
            if final is None:
                print("payment failed:", watcher.state.error)
                sys.exit(1)
        else:
            final = watcher.resume()
            if final is None:
                print("nothing to resume; pass --phone and --amount")
                sys.exit(2)
    except WatchError as e:
        print("watch failed:", e)
        sys.exit(1)
    except KeyboardInterrupt:
        watcher.stop()
        print("stopped; run again to resume")
        sys.exit(130)
    finally:
        source.close()
        client.close()

    sys.exit(0 if final == "success" else 1)


if __name__ == "__main__":
    main()
