"""status change notification and viewer row-level security

Revision ID: 0002_status_notify_and_rls
Revises: 0001_stk_payments
Create Date: 2026-10-19 00:10:00.000000

"""

from __future__ import annotations

import os

from alembic import op

from settings import settings

revision = "0002_status_notify_and_rls"
down_revision = "0001_stk_payments"
branch_labels = None
depends_on = None

CHANNEL = settings.STATUS_NOTIFY_CHANNEL
VIEWER_ROLE = os.getenv("STK_VIEWER_ROLE", "stk_viewer")

def upgrade() -> None:
    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION app.stk_payments_notify() RETURNS trigger
        LANGUAGE plpgsql AS $$
        BEGIN
            PERFORM pg_notify(
                '{CHANNEL}',
                json_build_object('public_id', NEW.public_id, 'status', NEW.status)::text
            );
            RETURN NEW;
        END
        $$;
        """
    )
    op.execute("DROP TRIGGER IF EXISTS stk_payments_notify ON app.stk_payments;")
    op.execute(
        """
        CREATE TRIGGER stk_payments_notify
        AFTER UPDATE OF status ON app.stk_payments
        FOR EACH ROW EXECUTE FUNCTION app.stk_payments_notify();
        """
    )

    # viewers only ever see the row named by their session's app.public_id
    op.execute(
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{VIEWER_ROLE}') THEN
                CREATE ROLE {VIEWER_ROLE} NOLOGIN;
            END IF;
        END
        $$;
        """
    )
    op.execute(f"GRANT USAGE ON SCHEMA app TO {VIEWER_ROLE};")
    op.execute(f"GRANT SELECT (public_id, status) ON app.stk_payments TO {VIEWER_ROLE};")
    op.execute("ALTER TABLE app.stk_payments ENABLE ROW LEVEL SECURITY;")
    op.execute("DROP POLICY IF EXISTS stk_payments_viewer_select ON app.stk_payments;")
    op.execute(
        f"""
        CREATE POLICY stk_payments_viewer_select ON app.stk_payments
        FOR SELECT TO {VIEWER_ROLE}
        USING (public_id = current_setting('app.public_id', true));
        """
    )

def downgrade() -> None:
    op.execute("DROP POLICY IF EXISTS stk_payments_viewer_select ON app.stk_payments;")
    op.execute("ALTER TABLE app.stk_payments DISABLE ROW LEVEL SECURITY;")
    op.execute(f"REVOKE ALL ON app.stk_payments FROM {VIEWER_ROLE};")
    op.execute(f"REVOKE USAGE ON SCHEMA app FROM {VIEWER_ROLE};")
    op.execute("DROP TRIGGER IF EXISTS stk_payments_notify ON app.stk_payments;")
    op.execute("DROP FUNCTION IF EXISTS app.stk_payments_notify();")
