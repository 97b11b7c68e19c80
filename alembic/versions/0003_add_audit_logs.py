"""
alembic/versions/0003_add_audit_logs.py
────────────────────────────────────────
Audit log table.

event_type stored as plain VARCHAR(80) for extensibility.
Append-only table: no UPDATE/DELETE operations ever.

Revision chain: 0002 → 0003
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("event_type", sa.String(80), nullable=False),
        # No FK on these — rows must survive profile/company deletion
        sa.Column("actor_user_id", sa.String(32), nullable=True),
        sa.Column("company_id", sa.String(32), nullable=True),
        sa.Column("subject_id", sa.String(255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_logs_company_id", "audit_logs", ["company_id"])
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor_user_id"])
    op.create_index("ix_audit_logs_event_type", "audit_logs", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_event_type", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor", table_name="audit_logs")
    op.drop_index("ix_audit_logs_company_id", table_name="audit_logs")
    op.drop_table("audit_logs")
