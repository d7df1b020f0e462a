# app/watcher/flow.py
from __future__ import annotations

import logging
from typing import Any, Optional

from app.watcher.client import ApiError, StkApiClient
from app.watcher.state import IdStore
from app.watcher.watcher import PaymentWatcher, WatchError

logger = logging.getLogger("stkpay.watcher")


class PaymentFlow:
    """
    Client side of one payment: initiate, remember the id, watch to the end.
    Retrying is simply calling pay() again, which yields a new public_id.
    """

    def __init__(self, client: StkApiClient, watcher: PaymentWatcher, store: IdStore):
        self.client = client
        self.watcher = watcher
        self.store = store

    @property
    def state(self):
        return self.watcher.state

    def pay(self, *, phone: str, amount: Any) -> Optional[str]:
        if self.state.busy:
            raise RuntimeError("A payment is already in progress")

        self.state.status = "sending"
        self.state.error = None
        try:
            public_id = self.client.initiate(phone=phone, amount=amount)
        except ApiError as e:
            logger.error("stk_initiate_failed error=%s", e.message)
            self.state.status = "failed"
            self.state.error = e.message
            return None

        self.store.set(public_id)
        self.state.public_id = public_id
        self.state.status = "pending"
        try:
            return self.watcher.watch(public_id)
        except WatchError:
            # watcher already moved the state to failed with the reason
            return None
