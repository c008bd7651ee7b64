"""create remote store tables

Revision ID: 4a7e2c9d1b30
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "4a7e2c9d1b30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_TABLES = ("content_cache", "news_cache", "profiles", "user_progress", "user_vocabulary", "history")


def upgrade() -> None:
  # Every remote table stores one keyed JSON document per row.
  for table in _TABLES:
    op.create_table(
      table,
      sa.Column("record_key", sa.String(), primary_key=True),
      sa.Column("owner_id", sa.String(), nullable=True),
      sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
      sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
      sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(f"ix_{table}_owner_id", table, ["owner_id"], unique=False)
    op.create_index(f"ix_{table}_created_at", table, ["created_at"], unique=False)


def downgrade() -> None:
  for table in reversed(_TABLES):
    op.drop_index(f"ix_{table}_created_at", table_name=table)
    op.drop_index(f"ix_{table}_owner_id", table_name=table)
    op.drop_table(table)
