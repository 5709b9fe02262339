"""Create collection ledger, milk pool, batch and usage tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial tables."""
    # Create milk_collections table
    op.create_table(
        "milk_collections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=True),
        sa.Column("quantity_liters", sa.Numeric(14, 3), nullable=False),
        sa.Column("fat_percent", sa.Numeric(6, 3), nullable=True),
        sa.Column("snf_percent", sa.Numeric(6, 3), nullable=True),
        sa.Column("price_per_liter", sa.Numeric(12, 2), nullable=True),
        sa.Column("photo_url", sa.String(length=500), nullable=True),
        sa.Column("qc_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column(
            "consumption_status", sa.String(length=20), nullable=False, server_default="new"
        ),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("collected_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity_liters >= 0", name="ck_milk_collections_quantity"),
    )
    op.create_index("ix_milk_collections_supplier_id", "milk_collections", ["supplier_id"])
    op.create_index("ix_milk_collections_qc_status", "milk_collections", ["qc_status"])
    op.create_index(
        "ix_milk_collections_consumption_status", "milk_collections", ["consumption_status"]
    )
    op.create_index("ix_milk_collections_collected_at", "milk_collections", ["collected_at"])

    # Create milk_pools table
    op.create_table(
        "milk_pools",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("total_milk_liters", sa.Numeric(16, 3), nullable=False, server_default="0"),
        sa.Column("total_fat_units", sa.Numeric(20, 6), nullable=False, server_default="0"),
        sa.Column("total_snf_units", sa.Numeric(20, 6), nullable=False, server_default="0"),
        sa.Column(
            "remaining_milk_liters", sa.Numeric(16, 3), nullable=False, server_default="0"
        ),
        sa.Column("remaining_fat_units", sa.Numeric(20, 6), nullable=False, server_default="0"),
        sa.Column("remaining_snf_units", sa.Numeric(20, 6), nullable=False, server_default="0"),
        sa.Column("original_avg_fat", sa.Numeric(8, 4), nullable=False, server_default="0"),
        sa.Column("original_avg_snf", sa.Numeric(8, 4), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "remaining_milk_liters >= 0 AND remaining_milk_liters <= total_milk_liters",
            name="ck_milk_pools_remaining_within_total",
        ),
    )
    op.create_index("ix_milk_pools_status", "milk_pools", ["status"])
    # At most one active pool
    op.create_index(
        "uq_milk_pools_single_active",
        "milk_pools",
        ["status"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # Create production_batches table
    op.create_table(
        "production_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_code", sa.String(length=40), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("milk_pool_id", sa.Integer(), nullable=False),
        sa.Column("yield_quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("produced_at", sa.DateTime(), nullable=False),
        sa.Column("qc_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["milk_pool_id"], ["milk_pools.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("batch_code"),
    )
    op.create_index("ix_production_batches_batch_code", "production_batches", ["batch_code"])
    op.create_index("ix_production_batches_product_id", "production_batches", ["product_id"])
    op.create_index(
        "ix_production_batches_milk_pool_id", "production_batches", ["milk_pool_id"]
    )
    op.create_index("ix_production_batches_produced_at", "production_batches", ["produced_at"])

    # Create pool_collections table
    op.create_table(
        "pool_collections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("milk_pool_id", sa.Integer(), nullable=False),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("quantity_liters", sa.Numeric(14, 3), nullable=False),
        sa.Column("fat_units", sa.Numeric(20, 6), nullable=False),
        sa.Column("snf_units", sa.Numeric(20, 6), nullable=False),
        sa.Column("added_by", sa.Integer(), nullable=True),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["milk_pool_id"], ["milk_pools.id"]),
        sa.ForeignKeyConstraint(["collection_id"], ["milk_collections.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["production_batches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection_id"),
    )
    op.create_index("ix_pool_collections_milk_pool_id", "pool_collections", ["milk_pool_id"])
    op.create_index("ix_pool_collections_batch_id", "pool_collections", ["batch_id"])

    # Create milk_usage_log table
    op.create_table(
        "milk_usage_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("milk_pool_id", sa.Integer(), nullable=False),
        sa.Column("used_liters", sa.Numeric(16, 3), nullable=False),
        sa.Column("used_fat_units", sa.Numeric(20, 6), nullable=False),
        sa.Column("used_snf_units", sa.Numeric(20, 6), nullable=False),
        sa.Column("remaining_liters_after", sa.Numeric(16, 3), nullable=False),
        sa.Column("remaining_fat_units_after", sa.Numeric(20, 6), nullable=False),
        sa.Column("remaining_snf_units_after", sa.Numeric(20, 6), nullable=False),
        sa.Column("purpose", sa.String(length=200), nullable=True),
        sa.Column("used_by", sa.Integer(), nullable=True),
        sa.Column("used_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["milk_pool_id"], ["milk_pools.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("used_liters > 0", name="ck_milk_usage_log_used_positive"),
    )
    op.create_index("ix_milk_usage_log_milk_pool_id", "milk_usage_log", ["milk_pool_id"])
    op.create_index("ix_milk_usage_log_used_at", "milk_usage_log", ["used_at"])

    # Seed the single active pool
    op.execute(
        "INSERT INTO milk_pools (name, status, version, created_at, updated_at) "
        "VALUES ('Main Pool', 'active', 1, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
    )


def downgrade() -> None:
    """Drop initial tables."""
    op.drop_index("ix_milk_usage_log_used_at", table_name="milk_usage_log")
    op.drop_index("ix_milk_usage_log_milk_pool_id", table_name="milk_usage_log")
    op.drop_table("milk_usage_log")

    op.drop_index("ix_pool_collections_batch_id", table_name="pool_collections")
    op.drop_index("ix_pool_collections_milk_pool_id", table_name="pool_collections")
    op.drop_table("pool_collections")

    op.drop_index("ix_production_batches_produced_at", table_name="production_batches")
    op.drop_index("ix_production_batches_milk_pool_id", table_name="production_batches")
    op.drop_index("ix_production_batches_product_id", table_name="production_batches")
    op.drop_index("ix_production_batches_batch_code", table_name="production_batches")
    op.drop_table("production_batches")

    op.drop_index("uq_milk_pools_single_active", table_name="milk_pools")
    op.drop_index("ix_milk_pools_status", table_name="milk_pools")
    op.drop_table("milk_pools")

    op.drop_index("ix_milk_collections_collected_at", table_name="milk_collections")
    op.drop_index("ix_milk_collections_consumption_status", table_name="milk_collections")
    op.drop_index("ix_milk_collections_qc_status", table_name="milk_collections")
    op.drop_index("ix_milk_collections_supplier_id", table_name="milk_collections")
    op.drop_table("milk_collections")
