import datetime as dt
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from periods import PayFrequency


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class PaySettings(Base, TimestampMixin):
    __tablename__ = "pay_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_pay_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    frequency: Mapped[PayFrequency] = mapped_column(
        SAEnum(PayFrequency), nullable=False
    )


class BudgetCategory(Base, TimestampMixin):
    __tablename__ = "budget_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    allocated_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    color: Mapped[str] = mapped_column(String(9), nullable=False, default="#3B82F6")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_budget_category: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="category"
    )

    __table_args__ = (
        CheckConstraint(
            "allocated_cents >= 0", name="ck_budget_category_allocated_positive"
        ),
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("budget_categories.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    cash_back_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cashback_posted: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    pending: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pending_tip_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credit_card_pending: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[Optional["BudgetCategory"]] = relationship(
        "BudgetCategory", back_populates="transactions"
    )

    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_category_date", "category_id", "date"),
        CheckConstraint(
            "cash_back_cents >= 0", name="ck_transactions_cash_back_positive"
        ),
        CheckConstraint(
            "pending_tip_cents >= 0", name="ck_transactions_pending_tip_positive"
        ),
    )


class RecurringBill(Base, TimestampMixin):
    __tablename__ = "recurring_bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    due_day: Mapped[int] = mapped_column(Integer, nullable=False)
    is_essential: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    completions: Mapped[list["CompletedBill"]] = relationship(
        "CompletedBill", back_populates="bill", cascade="all, delete-orphan"
    )
    overrides: Mapped[list["PendingBillOverride"]] = relationship(
        "PendingBillOverride", back_populates="bill", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_bill_due_day_range"),
        CheckConstraint("amount_cents >= 0", name="ck_bill_amount_positive"),
    )


class CompletedBill(Base, TimestampMixin):
    __tablename__ = "completed_bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bill_id: Mapped[int] = mapped_column(
        ForeignKey("recurring_bills.id", ondelete="CASCADE"), nullable=False
    )
    completed_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    pay_period_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[dt.date] = mapped_column(Date, nullable=False)

    bill: Mapped["RecurringBill"] = relationship(
        "RecurringBill", back_populates="completions"
    )

    __table_args__ = (
        UniqueConstraint(
            "bill_id",
            "pay_period_start",
            "pay_period_end",
            name="uq_completed_bill_period",
        ),
    )


class PendingBillOverride(Base, TimestampMixin):
    __tablename__ = "pending_bill_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bill_id: Mapped[int] = mapped_column(
        ForeignKey("recurring_bills.id", ondelete="CASCADE"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_period_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[dt.date] = mapped_column(Date, nullable=False)

    bill: Mapped["RecurringBill"] = relationship(
        "RecurringBill", back_populates="overrides"
    )

    __table_args__ = (
        UniqueConstraint(
            "bill_id",
            "pay_period_start",
            "pay_period_end",
            name="uq_pending_override_period",
        ),
        CheckConstraint("amount_cents >= 0", name="ck_pending_override_positive"),
    )


class ManualPendingTransaction(Base, TimestampMixin):
    __tablename__ = "manual_pending_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("budget_categories.id", ondelete="SET NULL")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    pay_period_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[dt.date] = mapped_column(Date, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    category: Mapped[Optional["BudgetCategory"]] = relationship("BudgetCategory")

    __table_args__ = (
        Index(
            "ix_manual_pending_period",
            "pay_period_start",
            "pay_period_end",
        ),
        CheckConstraint(
            "pay_period_end >= pay_period_start", name="ck_manual_pending_period_order"
        ),
    )
