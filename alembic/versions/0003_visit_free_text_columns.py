"""turbine / site / equipment / company / malfunction columns become unbounded text

Revision ID: 0003_visit_free_text_columns
Revises: 0002_visit_extended_fields
Create Date: 2026-10-19

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0003_visit_free_text_columns"
down_revision = "0002_visit_extended_fields"
branch_labels = None
depends_on = None

_COLUMNS = ("turbine_id", "power_plant", "equipment_name", "maintenance_company", "malfunction_type")


def upgrade():
    with op.batch_alter_table("visits") as batch:
        for name in _COLUMNS:
            batch.alter_column(name, type_=sa.Text(), existing_type=sa.String(length=128))


def downgrade():
    with op.batch_alter_table("visits") as batch:
        for name in _COLUMNS:
            batch.alter_column(name, type_=sa.String(length=128), existing_type=sa.Text())
