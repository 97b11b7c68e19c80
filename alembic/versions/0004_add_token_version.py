"""
alembic/versions/0004_add_token_version.py
───────────────────────────────────────────
Per-account token version, checked against the `ver` claim of bearer and
reset tokens. Existing rows start at 0, which matches tokens minted
before this column existed.

Revision chain: 0003 → 0004
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("accounts") as batch:
        batch.add_column(
            sa.Column("token_version", sa.Integer(), server_default="0", nullable=False)
        )


def downgrade() -> None:
    with op.batch_alter_table("accounts") as batch:
        batch.drop_column("token_version")
