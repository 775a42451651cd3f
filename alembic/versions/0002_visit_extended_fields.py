"""site / equipment / status fields for the extended check-in form

Revision ID: 0002_visit_extended_fields
Revises: 0001_visits
Create Date: 2026-10-12

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_visit_extended_fields"
down_revision = "0001_visits"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("visits", sa.Column("power_plant", sa.String(length=128), nullable=True))
    op.add_column("visits", sa.Column("equipment_name", sa.String(length=128), nullable=True))
    op.add_column("visits", sa.Column("maintenance_company", sa.String(length=128), nullable=True))
    op.add_column("visits", sa.Column("status", sa.String(length=8), nullable=True))
    op.add_column("visits", sa.Column("malfunction_type", sa.String(length=128), nullable=True))

    op.create_index("ix_visits_power_plant_active", "visits", ["power_plant", "check_out"])
    op.create_index(
        "ix_visits_equipment_active", "visits", ["power_plant", "equipment_name", "check_out"]
    )


def downgrade():
    op.drop_index("ix_visits_equipment_active", table_name="visits")
    op.drop_index("ix_visits_power_plant_active", table_name="visits")
    with op.batch_alter_table("visits") as batch:
        batch.drop_column("malfunction_type")
        batch.drop_column("status")
        batch.drop_column("maintenance_company")
        batch.drop_column("equipment_name")
        batch.drop_column("power_plant")
