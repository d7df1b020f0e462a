# db.py
import psycopg2
from psycopg2.pool import SimpleConnectionPool
from contextlib import contextmanager
from settings import settings

_pool: SimpleConnectionPool | None = None

CONNECT_TIMEOUT_S = 5
STATEMENT_TIMEOUT = "5000ms"


def _session_defaults(conn, application_name: str) -> None:
    # every query the API or a watcher issues is a single-row lookup or update
    with conn.cursor() as cur:
        cur.execute("SET statement_timeout = %s;", (STATEMENT_TIMEOUT,))
        cur.execute("SET application_name = %s;", (application_name,))


def init_pool(dsn: str | None = None, maxconn: int = 10):
    """
    Create the pool for the privileged service DSN.
    Called lazily on first get_conn().
    """
    global _pool
    if _pool is None:
        _pool = SimpleConnectionPool(
            minconn=1,
            maxconn=maxconn,
            dsn=dsn or settings.DATABASE_URL,
            connect_timeout=CONNECT_TIMEOUT_S,
        )
    return _pool


def close_pool():
    global _pool
    if _pool:
        _pool.closeall()
        _pool = None


@contextmanager
def get_conn():
    """
    One transaction on a pooled connection: commit on success, rollback on error.
    """
    pool = _pool or init_pool()
    conn = pool.getconn()

    try:
        _session_defaults(conn, "stkpay_api")
        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        pool.putconn(conn)


def connect(dsn: str | None = None, *, autocommit: bool = False, application_name: str = "stkpay_watcher"):
    """
    Dedicated connection outside the pool, for LISTEN and viewer sessions
    that outlive a single transaction. The caller closes it.
    """
    conn = psycopg2.connect(dsn or settings.DATABASE_URL, connect_timeout=CONNECT_TIMEOUT_S)
    conn.autocommit = autocommit
    _session_defaults(conn, application_name)
    return conn
