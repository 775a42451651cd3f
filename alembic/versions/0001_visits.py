"""visits table

Revision ID: 0001_visits
Revises:
Create Date: 2026-10-05

"""

import sqlalchemy as sa

from alembic import op

revision = "0001_visits"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "visits",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("turbine_id", sa.String(length=128), nullable=False, index=True),
        sa.Column("technicians", sa.JSON(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("check_in", sa.DateTime(), nullable=False),
        sa.Column("check_out", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_visits_turbine_active", "visits", ["turbine_id", "check_out"])


def downgrade() -> None:
    op.drop_index("ix_visits_turbine_active", table_name="visits")
    op.drop_table("visits")
