# db_exec.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from psycopg2.extensions import connection as Connection
from psycopg2.extras import RealDictCursor

from app.payments.errors import PersistenceError

logger = logging.getLogger("stkpay.db")

Params = Optional[Union[Sequence[Any], Mapping[str, Any]]]


def _wrap(exc: Exception, message: str | None) -> PersistenceError:
    logger.error("db_error type=%s error=%s", type(exc).__name__, exc)
    return PersistenceError(message)


def db_fetchone(conn: Connection, sql: str, params: Params = None, *, error_message: str | None = None) -> Optional[dict]:
    """
    Execute on the provided connection (preserves session settings such as app.public_id).
    Returns the row as a dict, or None.
    """
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(sql, params or ())
            row = cur.fetchone()
            return dict(row) if row is not None else None
    except PersistenceError:
        raise
    except Exception as e:
        raise _wrap(e, error_message) from e


def db_execute(conn: Connection, sql: str, params: Params = None, *, error_message: str | None = None) -> int:
    """
    Returns the affected row count.
    """
    try:
        with conn.cursor() as cur:
            cur.execute(sql, params or ())
            return cur.rowcount
    except Exception as e:
        raise _wrap(e, error_message) from e
