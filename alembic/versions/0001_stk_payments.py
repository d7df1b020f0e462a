"""create stk_payments table

Revision ID: 0001_stk_payments
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0001_stk_payments"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS app;")
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.stk_payments (
            public_id text NOT NULL,
            checkout_request_id text NOT NULL,
            phone text NOT NULL,
            amount integer NOT NULL,
            status text DEFAULT 'pending' NOT NULL,
            result_code integer,
            result_desc text,
            mpesa_receipt_number text,
            created_at timestamp with time zone DEFAULT now() NOT NULL,
            updated_at timestamp with time zone DEFAULT now() NOT NULL,
            CONSTRAINT stk_payments_pkey PRIMARY KEY (public_id),
            CONSTRAINT stk_payments_amount_positive CHECK (amount > 0),
            CONSTRAINT stk_payments_status_check CHECK (status IN ('pending', 'success', 'failed'))
        );
        """
    )
    op.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_stk_payments_checkout_request_id ON app.stk_payments USING btree (checkout_request_id);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS app.stk_payments;")
