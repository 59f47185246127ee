"""create audit_logs table with partitioning

Revision ID: 7e42b9d0c8f3
Revises: 3c1d0a7e5b21
Create Date: 2026-10-19 09:31:02.518870
"""
from typing import Sequence, Union
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "7e42b9d0c8f3"
down_revision: Union[str, Sequence[str], None] = "3c1d0a7e5b21"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONTHS = ["2026_10", "2026_11", "2026_12", "2027_01"]


def _bounds(month: str) -> tuple[str, str]:
    year, mon = (int(p) for p in month.split("_"))
    nxt_year, nxt_mon = (year + 1, 1) if mon == 12 else (year, mon + 1)
    return f"{year:04d}-{mon:02d}-01", f"{nxt_year:04d}-{nxt_mon:02d}-01"


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS audit")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs(
            id BIGINT GENERATED ALWAYS AS IDENTITY,
            ts_utc timestamptz NOT NULL DEFAULT now(),
            request_id text,
            scope text NOT NULL,
            action text NOT NULL,
            actor_user_id bigint,
            actor_roles text[] NOT NULL DEFAULT '{}',
            actor_ip inet,
            holder_ref text,
            route text,
            object_type text,
            object_id bigint,
            competition_id bigint,
            payment_id bigint,
            status text NOT NULL,
            reason text,
            meta jsonb NOT NULL DEFAULT '{}'::jsonb,
            CONSTRAINT chk_audit_status CHECK (status IN ('SUCCESS','FAIL')),
            PRIMARY KEY (ts_utc, id)
        ) PARTITION BY RANGE (ts_utc)
        """
    )

    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_ts ON audit.audit_logs (ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_actor_ts ON audit.audit_logs (actor_user_id, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_action_ts ON audit.audit_logs (action, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_obj ON audit.audit_logs (object_type, object_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_holder ON audit.audit_logs (holder_ref)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_competition ON audit.audit_logs (competition_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_payment ON audit.audit_logs (payment_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_meta_gin ON audit.audit_logs USING gin (meta jsonb_path_ops)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_id ON audit.audit_logs (id)")

    for month in MONTHS:
        start, end = _bounds(month)
        op.execute(
            f"""
            CREATE TABLE IF NOT EXISTS audit.audit_logs_{month}
              PARTITION OF audit.audit_logs
              FOR VALUES FROM (TIMESTAMPTZ '{start} 00:00:00+00') TO (TIMESTAMPTZ '{end} 00:00:00+00')
            """
        )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs_default
          PARTITION OF audit.audit_logs DEFAULT
        """
    )


def downgrade() -> None:
    op.execute("DROP SCHEMA IF EXISTS audit CASCADE")
