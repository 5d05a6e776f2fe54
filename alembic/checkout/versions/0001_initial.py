"""initial checkout schema

Revision ID: 0001_checkout
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_checkout"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "purchases",
        sa.Column("purchase_id", sa.String(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("product_type", sa.String(), nullable=False),
        sa.Column("amount", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("state_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("purchase_id"),
    )
    op.create_index("ix_purchases_order_id", "purchases", ["order_id"])
    op.create_index("ix_purchases_status", "purchases", ["status"])


def downgrade() -> None:
    op.drop_index("ix_purchases_status", table_name="purchases")
    op.drop_index("ix_purchases_order_id", table_name="purchases")
    op.drop_table("purchases")
