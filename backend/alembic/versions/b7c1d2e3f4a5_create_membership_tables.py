"""create_membership_tables

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7c1d2e3f4a5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "memberships",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("subject_id", sa.BigInteger(), nullable=False),
        sa.Column("plan_id", sa.BigInteger(), nullable=False),
        sa.Column("order_id", sa.BigInteger(), nullable=False),
        sa.Column("tier", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_memberships_plan_id", "memberships", ["plan_id"])
    op.create_index("ix_memberships_order_id", "memberships", ["order_id"])
    op.create_index("ix_memberships_subject_status", "memberships", ["subject_id", "status"])
    op.create_index("ix_memberships_expires_status", "memberships", ["expires_at", "status"])

    # One row per order that has been turned into grants
    op.create_table(
        "order_grants",
        sa.Column("order_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("subject_id", sa.BigInteger(), nullable=False),
        sa.Column("memberships_granted", sa.Integer(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint("order_id"),
    )

    op.create_table(
        "checkout_fields",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.BigInteger(), nullable=False),
        sa.Column("field_key", sa.String(length=100), nullable=False),
        sa.Column("field_value", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_checkout_fields_order_id", "checkout_fields", ["order_id"])


def downgrade() -> None:
    op.drop_index("ix_checkout_fields_order_id", table_name="checkout_fields")
    op.drop_table("checkout_fields")
    op.drop_table("order_grants")
    op.drop_index("ix_memberships_expires_status", table_name="memberships")
    op.drop_index("ix_memberships_subject_status", table_name="memberships")
    op.drop_index("ix_memberships_order_id", table_name="memberships")
    op.drop_index("ix_memberships_plan_id", table_name="memberships")
    op.drop_table("memberships")
