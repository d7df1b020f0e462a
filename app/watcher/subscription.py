# app/watcher/subscription.py
from __future__ import annotations

import json
import logging
import select
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

from psycopg2 import sql

logger = logging.getLogger("stkpay.watcher")


@dataclass(frozen=True)
class StatusEvent:
    public_id: str
    status: str


class Subscription(Protocol):
    """
    Stream of status changes for one public_id. Iteration blocks until the
    next event; unsubscribe() ends the stream and releases the transport.
    """

    def __iter__(self) -> Iterator[StatusEvent]: ...
    def unsubscribe(self) -> None: ...


class _GeneratorSubscription:
    def __init__(self, public_id: str):
        self.public_id = public_id
        self._stopped = threading.Event()
        self._gen: Optional[Iterator[StatusEvent]] = None

    def __iter__(self) -> Iterator[StatusEvent]:
        if self._gen is None:
            self._gen = self._events()
        return self._gen

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def unsubscribe(self) -> None:
        self._stopped.set()
        gen, self._gen = self._gen, None
        # a generator running in another thread notices _stopped on its next wakeup
        if gen is not None and not getattr(gen, "gi_running", False):
            gen.close()

    def _events(self) -> Iterator[StatusEvent]:
        raise NotImplementedError


class PollingSubscription(_GeneratorSubscription):
    """
    Re-reads the status every interval and emits only changes.
    """

    def __init__(
        self,
        public_id: str,
        read: Callable[[], Optional[str]],
        *,
        interval_s: float = 2.0,
        initial_status: Optional[str] = None,
        transient_errors: tuple[type[BaseException], ...] = (),
    ):
        super().__init__(public_id)
        self._read = read
        self.interval_s = interval_s
        self._last = initial_status
        self._transient = transient_errors

    def _events(self) -> Iterator[StatusEvent]:
        while not self._stopped.wait(self.interval_s):
            try:
                status = self._read()
            except self._transient as e:
                logger.warning("poll_failed public_id=%s error=%s", self.public_id, type(e).__name__)
                continue

            if status and status != self._last:
                self._last = status
                yield StatusEvent(public_id=self.public_id, status=status)


def parse_notification(payload: str, public_id: str) -> Optional[StatusEvent]:
    """
    Decode a stk_payments_notify payload; None when it belongs to another payment or is unreadable.
    """
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning("notify_invalid_payload payload=%r", payload[:100])
        return None
    if not isinstance(data, dict):
        return None
    if str(data.get("public_id") or "") != public_id:
        return None
    status = data.get("status")
    if not status:
        return None
    return StatusEvent(public_id=public_id, status=str(status))


class PgNotifySubscription(_GeneratorSubscription):
    """
    Row-change events delivered by PostgreSQL LISTEN/NOTIFY.

    The channel carries every payment's updates; events are filtered to public_id here.
    """

    def __init__(
        self,
        public_id: str,
        connect: Callable,
        *,
        channel: str,
        wait_s: float = 1.0,
        initial_status: Optional[str] = None,
        recheck: Optional[Callable] = None,
    ):
        super().__init__(public_id)
        self._connect = connect
        self.channel = channel
        self.wait_s = wait_s
        self._initial = initial_status
        self._recheck = recheck
        self.listening = threading.Event()

    def _events(self) -> Iterator[StatusEvent]:
        conn = self._connect()
        try:
            conn.autocommit = True
            with conn.cursor() as cur:
                cur.execute(sql.SQL("LISTEN {};").format(sql.Identifier(self.channel)))
            self.listening.set()
            logger.info("notify_listen channel=%s public_id=%s", self.channel, self.public_id)

            # an update committed between the caller's read and LISTEN would otherwise be lost
            if self._recheck is not None:
                status = self._recheck(conn)
                if status and status != self._initial:
                    yield StatusEvent(public_id=self.public_id, status=status)

            while not self._stopped.is_set():
                if select.select([conn], [], [], self.wait_s) == ([], [], []):
                    continue
                conn.poll()
                while conn.notifies:
                    notify = conn.notifies.pop(0)
                    event = parse_notification(notify.payload, self.public_id)
                    if event is not None:
                        yield event
        finally:
            self.listening.clear()
            conn.close()
