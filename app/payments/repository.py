# app/payments/repository.py
from __future__ import annotations

from typing import Optional

from psycopg2.extensions import connection as PGConn

from app.payments.model import CallbackOutcome, PaymentRecord, PENDING
from db_exec import db_execute, db_fetchone

TABLE = "app.stk_payments"


def insert_pending(
    conn: PGConn,
    *,
    public_id: str,
    checkout_request_id: str,
    phone: str,
    amount: int,
) -> None:
    """
    NOTE: caller commits.
    """
    db_execute(
        conn,
        f"""
        INSERT INTO {TABLE} (public_id, checkout_request_id, phone, amount, status)
        VALUES (%(public_id)s, %(checkout_request_id)s, %(phone)s, %(amount)s, %(status)s)
        """,
        {
            "public_id": public_id,
            "checkout_request_id": checkout_request_id,
            "phone": phone,
            "amount": int(amount),
            "status": PENDING,
        },
        error_message="DB insert failed",
    )


def apply_callback(conn: PGConn, *, public_id: str, outcome: CallbackOutcome) -> tuple[bool, Optional[str]]:
    """
    Overwrites status unconditionally (no terminal guard).
    Returns (updated, status_before). updated=False means no row matched public_id.
    """
    row = db_fetchone(
        conn,
        f"""
        WITH prev AS (
          SELECT public_id, status
          FROM {TABLE}
          WHERE public_id = %(public_id)s
          FOR UPDATE
        )
        UPDATE {TABLE} p
        SET status = %(status)s,
            result_code = %(result_code)s,
            result_desc = %(result_desc)s,
            mpesa_receipt_number = COALESCE(%(receipt)s, p.mpesa_receipt_number),
            updated_at = now()
        FROM prev
        WHERE p.public_id = prev.public_id
        RETURNING prev.status AS status_before
        """,
        {
            "public_id": public_id,
            "status": outcome.status,
            "result_code": outcome.result_code,
            "result_desc": outcome.result_desc,
            "receipt": outcome.mpesa_receipt_number,
        },
        error_message="Failed to update payment",
    )
    if row is None:
        return False, None
    return True, row.get("status_before")


def get_status(conn: PGConn, *, public_id: str) -> Optional[str]:
    row = db_fetchone(
        conn,
        f"SELECT status FROM {TABLE} WHERE public_id = %s",
        (public_id,),
        error_message="Failed to fetch payment status",
    )
    return row["status"] if row else None


def get_payment(conn: PGConn, *, public_id: str) -> Optional[PaymentRecord]:
    row = db_fetchone(
        conn,
        f"""
        SELECT public_id, checkout_request_id, phone, amount, status,
               result_code, result_desc, mpesa_receipt_number, created_at, updated_at
        FROM {TABLE}
        WHERE public_id = %s
        """,
        (public_id,),
        error_message="Failed to fetch payment",
    )
    if not row:
        return None
    return PaymentRecord(**row)
