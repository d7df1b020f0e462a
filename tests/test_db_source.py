from __future__ import annotations

import psycopg2
import pytest

from app.payments.errors import PersistenceError
from app.watcher.sources import DbStatusSource
from app.watcher.state import MemoryIdStore
from app.watcher.subscription import PgNotifySubscription
from app.watcher.watcher import PaymentWatcher, WatchError


class _FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))

    def fetchone(self):
        return {"status": self.conn.status} if self.conn.status else None


class _FakeConn:
    def __init__(self, status="pending"):
        self.status = status
        self.executed = []
        self.closed = False

    def cursor(self, cursor_factory=None):
        return _FakeCursor(self)

    def close(self):
        self.closed = True


def test_authenticate_scopes_connection_to_public_id():
    opened = []

    def connect(dsn, autocommit=False):
        assert dsn == "postgresql://viewer@db/app"
        assert autocommit is True
        conn = _FakeConn()
        opened.append(conn)
        return conn

    source = DbStatusSource("postgresql://viewer@db/app", channel="stk_payment_status", connect=connect)
    source.authenticate("abc")

    assert source.read_status("abc") == "pending"
    sql, params = opened[0].executed[0]
    assert "set_config('app.public_id'" in sql
    assert params == ("abc",)

    source.close()
    assert opened[0].closed


def test_authenticate_failure_is_persistence_error():
    def connect(dsn, autocommit=False):
        raise psycopg2.OperationalError("password authentication failed")

    source = DbStatusSource("postgresql://viewer@db/app", channel="c", connect=connect)
    with pytest.raises(PersistenceError, match="Failed to authenticate session."):
        source.authenticate("abc")


def test_subscribe_builds_listen_subscription():
    source = DbStatusSource("dsn", channel="stk_payment_status", connect=lambda dsn, autocommit=False: _FakeConn())
    sub = source.subscribe("abc", current_status="pending")
    assert isinstance(sub, PgNotifySubscription)
    assert sub.channel == "stk_payment_status"
    assert sub.public_id == "abc"


def test_watcher_with_db_source_surfaces_terminal_row():
    source = DbStatusSource("dsn", channel="c", connect=lambda dsn, autocommit=False: _FakeConn(status="success"))
    store = MemoryIdStore("abc")

    assert PaymentWatcher(source, store).watch("abc") == "success"
    assert store.get() is None


def test_watcher_with_db_source_row_hidden_by_rls():
    source = DbStatusSource("dsn", channel="c", connect=lambda dsn, autocommit=False: _FakeConn(status=None))
    store = MemoryIdStore("abc")

    with pytest.raises(WatchError, match="Payment not found."):
        PaymentWatcher(source, store).watch("abc")
    assert store.get() is None
