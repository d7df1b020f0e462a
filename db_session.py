# db_session.py
from uuid import UUID
from psycopg2.extensions import cursor as Cursor


def set_db_viewer(cur: Cursor, public_id: UUID | str) -> None:
    """
    Sets DB session variable so row-level security only exposes the viewer's own payment.
    is_local=false: the setting lives for the whole viewer session, not one transaction.
    """
    cur.execute("SELECT set_config('app.public_id', %s, false);", (str(public_id),))
