"""add atelier logs

Revision ID: 9c31f5e8a2d4
Revises: 4a7e2c9d1b30
Create Date: 2026-10-19 14:30:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "9c31f5e8a2d4"
down_revision: str | Sequence[str] | None = "4a7e2c9d1b30"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
  op.create_table(
    "atelier_logs",
    sa.Column("record_key", sa.String(), primary_key=True),
    sa.Column("owner_id", sa.String(), nullable=True),
    sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
  )
  op.create_index("ix_atelier_logs_owner_id", "atelier_logs", ["owner_id"], unique=False)
  op.create_index("ix_atelier_logs_created_at", "atelier_logs", ["created_at"], unique=False)


def downgrade() -> None:
  op.drop_index("ix_atelier_logs_created_at", table_name="atelier_logs")
  op.drop_index("ix_atelier_logs_owner_id", table_name="atelier_logs")
  op.drop_table("atelier_logs")
