from __future__ import annotations

import os

from fastapi import APIRouter

from db import get_conn
from settings import settings

router = APIRouter(tags=["health"])

# head of alembic/versions; the notify trigger and RLS policy arrive with it
MIGRATION_REVISION = "0002_status_notify_and_rls"


def _check_db() -> tuple[bool, str | None, str | None]:
    """
    Returns (db_ok, db_error, applied_revision).
    """
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass('public.alembic_version');")
                if cur.fetchone()[0] is None:
                    return True, None, None
                cur.execute("SELECT version_num FROM public.alembic_version LIMIT 1;")
                row = cur.fetchone()
        return True, None, (row[0] if row else None)
    except Exception as exc:
        return False, f"{type(exc).__name__}: {exc}", None


def _git_sha() -> str | None:
    return (os.getenv("GIT_SHA") or "").strip() or None


@router.get("/health")
def health():
    return {
        "ok": True,
        "env": settings.ENV,
        "mpesa_mode": settings.MPESA_MODE,
        "git_sha": _git_sha(),
    }


@router.get("/healthz")
def healthz():
    db_ok, db_error, applied = _check_db()
    return {
        "ok": True,
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "git_sha": _git_sha(),
        "db_ok": db_ok,
        "db_error": db_error,
        "migration_revision": applied,
        "migration_expected": MIGRATION_REVISION,
        "migrations_ok": applied == MIGRATION_REVISION,
    }
