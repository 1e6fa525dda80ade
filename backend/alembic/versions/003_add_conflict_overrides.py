"""Add conflict_override ledger table

Revision ID: 003_conflict_overrides
Revises: 002_blockers
Create Date: 2026-01-16 00:00:00.000000

Append-only: no unique constraint on (event_type, event_id, blocker_id).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy import inspect

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003_conflict_overrides"
down_revision: Union[str, None] = "002_blockers"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "conflict_override" in inspector.get_table_names():
        return

    op.create_table(
        "conflict_override",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),  # GAME | PRACTICE
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("blocker_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_conflict_override_organization_id"), "conflict_override", ["organization_id"], unique=False
    )
    op.create_index(op.f("ix_conflict_override_blocker_id"), "conflict_override", ["blocker_id"], unique=False)
    op.create_index("ix_conflict_override_event", "conflict_override", ["event_type", "event_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_conflict_override_event", table_name="conflict_override")
    op.drop_index(op.f("ix_conflict_override_blocker_id"), table_name="conflict_override")
    op.drop_index(op.f("ix_conflict_override_organization_id"), table_name="conflict_override")
    op.drop_table("conflict_override")
