"""Seed the administration's departments.

Revision ID: 002_seed_departments
Revises: 001_intake_schema
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "002_seed_departments"
down_revision = "001_intake_schema"
branch_labels = None
depends_on = None

DEPARTMENTS = [
    ("revenue", "Revenue Department", "Revenue collection, tax assessment and financial management"),
    ("health", "Health Department", "Public health services, hospitals and health programs"),
    ("water", "Water Supply Department", "Water supply, sanitation and water conservation"),
    ("education", "Education Department", "Schools, colleges and educational programs"),
    ("agriculture", "Agriculture Department", "Agricultural development and farmer welfare"),
    ("pwd", "Public Works Department", "Roads, infrastructure and public construction"),
    ("welfare", "Social Welfare Department", "Social security and welfare schemes"),
    ("urban", "Urban Development Department", "Urban planning and municipal services"),
]


def upgrade() -> None:
    conn = op.get_bind()
    for sort_order, (dept_id, name, description) in enumerate(DEPARTMENTS):
        conn.execute(
            sa.text(
                """
                INSERT INTO departments (id, name, description, sort_order)
                VALUES (:id, :name, :description, :sort_order)
                ON CONFLICT (id) DO NOTHING
                """
            ),
            {"id": dept_id, "name": name, "description": description, "sort_order": sort_order},
        )


def downgrade() -> None:
    op.execute(
        sa.text("DELETE FROM departments WHERE id = ANY(:ids)").bindparams(
            ids=[d[0] for d in DEPARTMENTS]
        )
    )
