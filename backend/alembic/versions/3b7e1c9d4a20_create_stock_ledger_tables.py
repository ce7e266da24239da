"""Create warehouse, outturn and stock movement tables

Revision ID: 3b7e1c9d4a20
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7e1c9d4a20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "warehouses",
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("location", sa.String(length=150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("warehouse_id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_warehouses_warehouse_id"), "warehouses", ["warehouse_id"], unique=False)

    op.create_table(
        "kunchinittus",
        sa.Column("kunchinittu_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("variety", sa.String(length=150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.warehouse_id"]),
        sa.PrimaryKeyConstraint("kunchinittu_id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_kunchinittus_kunchinittu_id"), "kunchinittus", ["kunchinittu_id"], unique=False)

    op.create_table(
        "outturns",
        sa.Column("outturn_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("allotted_variety", sa.String(length=150), nullable=True),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("is_cleared", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cleared_at", sa.Date(), nullable=True),
        sa.Column("cleared_by", sa.String(length=150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("outturn_id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_outturns_outturn_id"), "outturns", ["outturn_id"], unique=False)

    op.create_table(
        "packagings",
        sa.Column("packaging_id", sa.Integer(), nullable=False),
        sa.Column("brand_name", sa.String(length=150), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("allotted_kg", sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("packaging_id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_packagings_packaging_id"), "packagings", ["packaging_id"], unique=False)

    op.create_table(
        "arrivals",
        sa.Column("arrival_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("movement_type", sa.String(length=40), nullable=False),
        sa.Column("variety", sa.String(length=150), nullable=True),
        sa.Column("bags", sa.Integer(), nullable=False),
        sa.Column("net_weight", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("broker", sa.String(length=150), nullable=True),
        sa.Column("lorry_number", sa.String(length=50), nullable=True),
        sa.Column("from_kunchinittu_id", sa.Integer(), nullable=True),
        sa.Column("from_warehouse_id", sa.Integer(), nullable=True),
        sa.Column("to_kunchinittu_id", sa.Integer(), nullable=True),
        sa.Column("to_warehouse_id", sa.Integer(), nullable=True),
        sa.Column("outturn_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("approved_by", sa.String(length=150), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_approved_by", sa.String(length=150), nullable=True),
        sa.Column("admin_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["from_kunchinittu_id"], ["kunchinittus.kunchinittu_id"]),
        sa.ForeignKeyConstraint(["from_warehouse_id"], ["warehouses.warehouse_id"]),
        sa.ForeignKeyConstraint(["to_kunchinittu_id"], ["kunchinittus.kunchinittu_id"]),
        sa.ForeignKeyConstraint(["to_warehouse_id"], ["warehouses.warehouse_id"]),
        sa.ForeignKeyConstraint(["outturn_id"], ["outturns.outturn_id"]),
        sa.PrimaryKeyConstraint("arrival_id"),
    )
    op.create_index(op.f("ix_arrivals_arrival_id"), "arrivals", ["arrival_id"], unique=False)
    op.create_index(op.f("ix_arrivals_date"), "arrivals", ["date"], unique=False)
    op.create_index("ix_arrivals_from_kunchinittu_id", "arrivals", ["from_kunchinittu_id"], unique=False)
    op.create_index("ix_arrivals_to_kunchinittu_id", "arrivals", ["to_kunchinittu_id"], unique=False)

    op.create_table(
        "rice_productions",
        sa.Column("rice_production_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("outturn_id", sa.Integer(), nullable=False),
        sa.Column("product_type", sa.String(length=50), nullable=False),
        sa.Column("bags", sa.Integer(), nullable=False),
        sa.Column("quantity_quintals", sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column("paddy_bags_deducted", sa.Integer(), nullable=False),
        sa.Column("packaging_id", sa.Integer(), nullable=True),
        sa.Column("movement_type", sa.String(length=20), nullable=False),
        sa.Column("location_code", sa.String(length=50), nullable=True),
        sa.Column("lorry_number", sa.String(length=50), nullable=True),
        sa.Column("bill_number", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("approved_by", sa.String(length=150), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["outturn_id"], ["outturns.outturn_id"]),
        sa.ForeignKeyConstraint(["packaging_id"], ["packagings.packaging_id"]),
        sa.PrimaryKeyConstraint("rice_production_id"),
    )
    op.create_index(op.f("ix_rice_productions_rice_production_id"), "rice_productions", ["rice_production_id"], unique=False)
    op.create_index(op.f("ix_rice_productions_date"), "rice_productions", ["date"], unique=False)
    op.create_index("ix_rice_productions_outturn_id", "rice_productions", ["outturn_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_rice_productions_outturn_id", table_name="rice_productions")
    op.drop_index(op.f("ix_rice_productions_date"), table_name="rice_productions")
    op.drop_index(op.f("ix_rice_productions_rice_production_id"), table_name="rice_productions")
    op.drop_table("rice_productions")

    op.drop_index("ix_arrivals_to_kunchinittu_id", table_name="arrivals")
    op.drop_index("ix_arrivals_from_kunchinittu_id", table_name="arrivals")
    op.drop_index(op.f("ix_arrivals_date"), table_name="arrivals")
    op.drop_index(op.f("ix_arrivals_arrival_id"), table_name="arrivals")
    op.drop_table("arrivals")

    op.drop_index(op.f("ix_packagings_packaging_id"), table_name="packagings")
    op.drop_table("packagings")
    op.drop_index(op.f("ix_outturns_outturn_id"), table_name="outturns")
    op.drop_table("outturns")
    op.drop_index(op.f("ix_kunchinittus_kunchinittu_id"), table_name="kunchinittus")
    op.drop_table("kunchinittus")
    op.drop_index(op.f("ix_warehouses_warehouse_id"), table_name="warehouses")
    op.drop_table("warehouses")
