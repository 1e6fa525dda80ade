"""Add blocker table

Revision ID: 002_blockers
Revises: 001_initial
Create Date: 2026-01-13 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy import inspect

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_blockers"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "blocker" in inspector.get_table_names():
        return

    op.create_table(
        "blocker",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),  # EXAM | MAINTENANCE | EVENT | TRAVEL | HOLIDAY | WEATHER | CUSTOM
        sa.Column("applicability", sa.String(), nullable=False),  # ORG_WIDE | TEAM | FACILITY
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("facility_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start_instant", sa.DateTime(), nullable=False),
        sa.Column("end_instant", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["facility_id"], ["facility.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_blocker_organization_id"), "blocker", ["organization_id"], unique=False)
    op.create_index("ix_blocker_window", "blocker", ["start_instant", "end_instant"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_blocker_window", table_name="blocker")
    op.drop_index(op.f("ix_blocker_organization_id"), table_name="blocker")
    op.drop_table("blocker")
