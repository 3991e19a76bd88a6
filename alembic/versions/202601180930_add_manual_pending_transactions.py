"""add manual pending transactions

Revision ID: 202601180930
Revises: 202601100900
Create Date: 2026-01-18 09:30:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202601180930"
down_revision = "202601100900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "manual_pending_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("budget_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("pay_period_start", sa.Date(), nullable=False),
        sa.Column("pay_period_end", sa.Date(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "pay_period_end >= pay_period_start", name="ck_manual_pending_period_order"
        ),
    )
    op.create_index(
        "ix_manual_pending_period",
        "manual_pending_transactions",
        ["pay_period_start", "pay_period_end"],
    )


def downgrade() -> None:
    op.drop_index("ix_manual_pending_period", table_name="manual_pending_transactions")
    op.drop_table("manual_pending_transactions")
