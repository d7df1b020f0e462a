# app/payments/store.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Optional, Protocol

import psycopg2

from app.payments import repository
from app.payments.errors import PersistenceError
from app.payments.model import CallbackOutcome
from db import get_conn


class PaymentStore(Protocol):
    def insert_pending(self, *, public_id: str, checkout_request_id: str, phone: str, amount: int) -> None: ...
    def apply_callback(self, *, public_id: str, outcome: CallbackOutcome) -> tuple[bool, Optional[str]]: ...
    def get_status(self, *, public_id: str) -> Optional[str]: ...


class PgPaymentStore:
    """
    PaymentStore backed by the hosted Postgres table; one transaction per call.
    """

    def __init__(self, connect: Callable = get_conn):
        self._connect = connect

    @contextmanager
    def _tx(self, error_message: str):
        try:
            with self._connect() as conn:
                yield conn
        except PersistenceError:
            raise
        except psycopg2.Error as e:
            raise PersistenceError(error_message) from e

    def insert_pending(self, *, public_id: str, checkout_request_id: str, phone: str, amount: int) -> None:
        with self._tx("DB insert failed") as conn:
            repository.insert_pending(
                conn,
                public_id=public_id,
                checkout_request_id=checkout_request_id,
                phone=phone,
                amount=amount,
            )

    def apply_callback(self, *, public_id: str, outcome: CallbackOutcome) -> tuple[bool, Optional[str]]:
        with self._tx("Failed to update payment") as conn:
            return repository.apply_callback(conn, public_id=public_id, outcome=outcome)

    def get_status(self, *, public_id: str) -> Optional[str]:
        with self._tx("Failed to fetch payment status") as conn:
            return repository.get_status(conn, public_id=public_id)
