# app/watcher/sources.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import httpx
import psycopg2

from app.payments import repository
from app.payments.errors import PersistenceError
from app.watcher.client import StkApiClient
from app.watcher.subscription import PgNotifySubscription, PollingSubscription, Subscription
from db import connect as db_connect
from db_session import set_db_viewer

logger = logging.getLogger("stkpay.watcher")


class StatusSource(Protocol):
    def authenticate(self, public_id: str) -> None: ...
    def read_status(self, public_id: str) -> Optional[str]: ...
    def subscribe(self, public_id: str, *, current_status: Optional[str] = None) -> Subscription: ...
    def close(self) -> None: ...


class ApiStatusSource:
    """
    Watches through the service's HTTP API; changes are picked up by polling.
    """

    def __init__(self, client: StkApiClient, *, poll_interval_s: float = 2.0):
        self.client = client
        self.poll_interval_s = poll_interval_s

    def authenticate(self, public_id: str) -> None:
        self.client.create_session(public_id)

    def read_status(self, public_id: str) -> Optional[str]:
        return self.client.get_status(public_id)

    def subscribe(self, public_id: str, *, current_status: Optional[str] = None) -> Subscription:
        return PollingSubscription(
            public_id,
            lambda: self.client.get_status(public_id),
            interval_s=self.poll_interval_s,
            initial_status=current_status,
            transient_errors=(httpx.TransportError,),
        )

    def close(self) -> None:
        self.client.close()


class DbStatusSource:
    """
    Watches the hosted table directly with the public (RLS-restricted) DSN.
    """

    def __init__(
        self,
        dsn: str,
        *,
        channel: str,
        connect: Callable = db_connect,
    ):
        self.dsn = dsn
        self.channel = channel
        self._connect = connect
        self._conn = None

    def authenticate(self, public_id: str) -> None:
        self.close()
        try:
            conn = self._viewer_conn(public_id)
        except psycopg2.Error as e:
            raise PersistenceError("Failed to authenticate session.") from e
        self._conn = conn

    def read_status(self, public_id: str) -> Optional[str]:
        if self._conn is None:
            self.authenticate(public_id)
        return repository.get_status(self._conn, public_id=public_id)

    def _viewer_conn(self, public_id: str):
        conn = self._connect(self.dsn, autocommit=True)
        with conn.cursor() as cur:
            set_db_viewer(cur, public_id)
        return conn

    def subscribe(self, public_id: str, *, current_status: Optional[str] = None) -> Subscription:
        return PgNotifySubscription(
            public_id,
            lambda: self._viewer_conn(public_id),
            channel=self.channel,
            initial_status=current_status,
            recheck=lambda conn: repository.get_status(conn, public_id=public_id),
        )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
