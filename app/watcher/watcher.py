# app/watcher/watcher.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from app.payments.state_machine import is_terminal
from app.watcher.sources import StatusSource
from app.watcher.state import IdStore, WatchState
from app.watcher.subscription import Subscription

logger = logging.getLogger("stkpay.watcher")

StatusCallback = Callable[[str, str], None]


class WatchError(Exception):
    pass


class PaymentWatcher:
    """
    Follows one public_id until it reaches success or failed, then stops.

    Order: authenticate, point read, subscribe. A payment that is already
    terminal is surfaced without subscribing. There is no timeout: if the
    provider never calls back the watcher keeps waiting until stop().
    """

    def __init__(
        self,
        source: StatusSource,
        store: IdStore,
        *,
        state: Optional[WatchState] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self.source = source
        self.store = store
        self.state = state or WatchState()
        self.on_status = on_status
        self._subscription: Optional[Subscription] = None
        self._lock = threading.Lock()

    def _surface(self, public_id: str, status: str) -> None:
        self.state.status = status
        logger.info("watch_status public_id=%s status=%s", public_id, status)
        if self.on_status is not None:
            self.on_status(public_id, status)

    def _finish(self, public_id: str, status: str) -> str:
        self._surface(public_id, status)
        self.state.public_id = None
        self.store.clear()
        return status

    def resume(self) -> Optional[str]:
        """
        Continue watching the id left in the store by a previous run, if any.
        """
        public_id = self.store.get()
        if not public_id:
            return None
        return self.watch(public_id)

    def _fail(self, public_id: str, message: str, exc: BaseException | None = None) -> WatchError:
        # never leaves the state busy, so pay() can start over
        self.state.status = "failed"
        self.state.error = message
        logger.error("watch_failed public_id=%s reason=%s error=%s", public_id, message, exc)
        return WatchError(message)

    def watch(self, public_id: str) -> str:
        self.state.public_id = public_id
        self.state.error = None

        try:
            self.source.authenticate(public_id)
        except Exception as e:
            raise self._fail(public_id, "Failed to authenticate session.", e) from e

        try:
            current = self.source.read_status(public_id)
        except Exception as e:
            raise self._fail(public_id, "Failed to fetch payment status.", e) from e

        if current is None:
            self.state.public_id = None
            self.store.clear()
            raise self._fail(public_id, "Payment not found.")

        if is_terminal(current):
            return self._finish(public_id, current)

        self._surface(public_id, current)

        try:
            subscription = self.source.subscribe(public_id, current_status=current)
        except Exception as e:
            raise self._fail(public_id, "Lost connection to payment status.", e) from e
        with self._lock:
            self._subscription = subscription

        try:
            for event in subscription:
                if event.public_id != public_id:
                    continue
                if is_terminal(event.status):
                    return self._finish(public_id, event.status)
                self._surface(public_id, event.status)
        except Exception as e:
            raise self._fail(public_id, "Lost connection to payment status.", e) from e
        finally:
            with self._lock:
                self._subscription = None
            subscription.unsubscribe()

        # stop() was called before a terminal status arrived
        return self.state.status

    def stop(self) -> None:
        with self._lock:
            subscription = self._subscription
        if subscription is not None:
            subscription.unsubscribe()
