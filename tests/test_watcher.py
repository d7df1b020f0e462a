from __future__ import annotations

from typing import List, Optional

import pytest

from app.watcher.state import MemoryIdStore, WatchState
from app.watcher.subscription import StatusEvent
from app.watcher.watcher import PaymentWatcher, WatchError


class _FakeSubscription:
    def __init__(self, events: List[StatusEvent]):
        self.events = events
        self.unsubscribed = False

    def __iter__(self):
        for event in self.events:
            if self.unsubscribed:
                return
            yield event

    def unsubscribe(self):
        self.unsubscribed = True


class _FakeSource:
    def __init__(
        self,
        status: Optional[str] = "pending",
        events: Optional[List[StatusEvent]] = None,
        auth_ok: bool = True,
        read_error: Optional[Exception] = None,
    ):
        self.status = status
        self.auth_ok = auth_ok
        self.read_error = read_error
        self.calls: List[str] = []
        self.subscription = _FakeSubscription(events or [])
        self.subscribed_with: Optional[str] = None

    def authenticate(self, public_id):
        self.calls.append("authenticate")
        if not self.auth_ok:
            raise RuntimeError("session refused")

    def read_status(self, public_id):
        self.calls.append("read")
        if self.read_error is not None:
            raise self.read_error
        return self.status

    def subscribe(self, public_id, *, current_status=None):
        self.calls.append("subscribe")
        self.subscribed_with = current_status
        return self.subscription

    def close(self):
        pass


def _watcher(source, store=None, seen=None):
    store = store or MemoryIdStore("pid-1")
    on_status = (lambda pid, status: seen.append((pid, status))) if seen is not None else None
    return PaymentWatcher(source, store, on_status=on_status), store


def test_watch_follows_pending_to_success_and_clears_store():
    seen = []
    source = _FakeSource(
        events=[
            StatusEvent("pid-1", "pending"),
            StatusEvent("pid-1", "success"),
            StatusEvent("pid-1", "failed"),
        ]
    )
    watcher, store = _watcher(source, seen=seen)

    assert watcher.watch("pid-1") == "success"

    assert source.calls == ["authenticate", "read", "subscribe"]
    assert source.subscribed_with == "pending"
    assert source.subscription.unsubscribed
    assert seen == [("pid-1", "pending"), ("pid-1", "pending"), ("pid-1", "success")]
    assert watcher.state.status == "success"
    assert watcher.state.public_id is None
    assert store.get() is None


def test_watch_ignores_events_for_other_payments():
    source = _FakeSource(
        events=[
            StatusEvent("someone-else", "success"),
            StatusEvent("pid-1", "failed"),
        ]
    )
    watcher, _ = _watcher(source)

    assert watcher.watch("pid-1") == "failed"


def test_watch_already_terminal_does_not_subscribe():
    seen = []
    source = _FakeSource(status="failed")
    watcher, store = _watcher(source, seen=seen)

    assert watcher.watch("pid-1") == "failed"

    assert source.calls == ["authenticate", "read"]
    assert seen == [("pid-1", "failed")]
    assert store.get() is None


def test_watch_unknown_payment_clears_store_and_raises():
    source = _FakeSource(status=None)
    watcher, store = _watcher(source)

    with pytest.raises(WatchError, match="Payment not found."):
        watcher.watch("pid-1")

    assert watcher.state.error == "Payment not found."
    assert watcher.state.status == "failed"
    assert not watcher.state.busy
    assert store.get() is None
    assert "subscribe" not in source.calls


def test_watch_auth_failure_keeps_stored_id():
    source = _FakeSource(auth_ok=False)
    watcher, store = _watcher(source)

    with pytest.raises(WatchError, match="Failed to authenticate session."):
        watcher.watch("pid-1")

    assert watcher.state.error == "Failed to authenticate session."
    assert watcher.state.status == "failed"
    assert not watcher.state.busy
    assert store.get() == "pid-1"
    assert source.calls == ["authenticate"]


def test_watch_read_failure_marks_state_failed():
    source = _FakeSource(read_error=RuntimeError("connection reset"))
    watcher, store = _watcher(source)

    with pytest.raises(WatchError, match="Failed to fetch payment status."):
        watcher.watch("pid-1")

    assert watcher.state.status == "failed"
    assert not watcher.state.busy
    assert store.get() == "pid-1"
    assert "subscribe" not in source.calls


class _BrokenSubscription(_FakeSubscription):
    def __iter__(self):
        yield StatusEvent("pid-1", "pending")
        raise RuntimeError("stream dropped")


def test_watch_subscription_failure_marks_state_failed_and_unsubscribes():
    source = _FakeSource()
    source.subscription = _BrokenSubscription([])
    watcher, store = _watcher(source)

    with pytest.raises(WatchError, match="Lost connection to payment status."):
        watcher.watch("pid-1")

    assert watcher.state.status == "failed"
    assert watcher.state.error == "Lost connection to payment status."
    assert source.subscription.unsubscribed
    assert store.get() == "pid-1"


def test_watch_stream_ending_without_terminal_returns_current_status():
    source = _FakeSource(events=[])
    watcher, store = _watcher(source)

    assert watcher.watch("pid-1") == "pending"
    assert store.get() == "pid-1"
    assert source.subscription.unsubscribed


def test_stop_unsubscribes_from_callback():
    holder = {}

    def on_status(pid, status):
        if status == "pending" and "watcher" in holder and holder["watcher"]._subscription is not None:
            holder["watcher"].stop()

    source = _FakeSource(events=[StatusEvent("pid-1", "pending"), StatusEvent("pid-1", "success")])
    watcher = PaymentWatcher(source, MemoryIdStore("pid-1"), on_status=on_status)
    holder["watcher"] = watcher

    assert watcher.watch("pid-1") == "pending"
    assert source.subscription.unsubscribed


def test_resume_uses_stored_id():
    source = _FakeSource(status="success")
    watcher, store = _watcher(source, store=MemoryIdStore("pid-9"))

    assert watcher.resume() == "success"
    assert store.get() is None


def test_resume_without_stored_id_is_noop():
    source = _FakeSource()
    watcher, _ = _watcher(source, store=MemoryIdStore())

    assert watcher.resume() is None
    assert source.calls == []


def test_watch_state_busy():
    state = WatchState()
    assert not state.busy
    state.status = "sending"
    assert state.busy
    state.status = "pending"
    assert state.busy
    state.status = "success"
    assert not state.busy
