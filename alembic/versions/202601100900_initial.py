"""initial pay-period budget schema

Revision ID: 202601100900
Revises:
Create Date: 2026-01-10 09:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202601100900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "pay_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("last_pay_date", sa.Date(), nullable=False),
        sa.Column(
            "frequency",
            sa.Enum("weekly", "biweekly", name="payfrequency"),
            nullable=False,
        ),
        *_timestamps(),
    )

    op.create_table(
        "budget_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("allocated_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "color", sa.String(length=9), nullable=False, server_default="#3B82F6"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column(
            "is_budget_category", sa.Boolean(), nullable=False, server_default="1"
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "allocated_cents >= 0", name="ck_budget_category_allocated_positive"
        ),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("budget_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("cash_back_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cashback_posted", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("pending", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column(
            "pending_tip_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "credit_card_pending", sa.Boolean(), nullable=False, server_default="0"
        ),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "cash_back_cents >= 0", name="ck_transactions_cash_back_positive"
        ),
        sa.CheckConstraint(
            "pending_tip_cents >= 0", name="ck_transactions_pending_tip_positive"
        ),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index(
        "ix_transactions_category_date", "transactions", ["category_id", "date"]
    )

    op.create_table(
        "recurring_bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("due_day", sa.Integer(), nullable=False),
        sa.Column("is_essential", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_bill_due_day_range"),
        sa.CheckConstraint("amount_cents >= 0", name="ck_bill_amount_positive"),
    )

    op.create_table(
        "completed_bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "bill_id",
            sa.Integer(),
            sa.ForeignKey("recurring_bills.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("completed_date", sa.Date(), nullable=False),
        sa.Column("pay_period_start", sa.Date(), nullable=False),
        sa.Column("pay_period_end", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "bill_id",
            "pay_period_start",
            "pay_period_end",
            name="uq_completed_bill_period",
        ),
    )

    op.create_table(
        "pending_bill_overrides",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "bill_id",
            sa.Integer(),
            sa.ForeignKey("recurring_bills.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("pay_period_start", sa.Date(), nullable=False),
        sa.Column("pay_period_end", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "bill_id",
            "pay_period_start",
            "pay_period_end",
            name="uq_pending_override_period",
        ),
        sa.CheckConstraint("amount_cents >= 0", name="ck_pending_override_positive"),
    )


def downgrade() -> None:
    op.drop_table("pending_bill_overrides")
    op.drop_table("completed_bills")
    op.drop_table("recurring_bills")
    op.drop_index("ix_transactions_category_date", table_name="transactions")
    op.drop_index("ix_transactions_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("budget_categories")
    op.drop_table("pay_settings")
