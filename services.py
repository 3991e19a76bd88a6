from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, joinedload

from budgeting import (
    CategoryAdjustment,
    CategorySpendAggregate,
    Overspend,
    PeriodType,
    SpendTransaction,
    adjust_category,
    aggregate_transactions,
    cents_to_amount,
    daily_budget_remaining,
    day_rate_allocation,
    inclusive_day_count,
    overspend,
    prorated_allocation,
    summarize,
    to_amount,
)
from models import (
    BudgetCategory,
    CompletedBill,
    ManualPendingTransaction,
    PaySettings,
    PendingBillOverride,
    RecurringBill,
    Transaction,
)
from periods import (
    PayFrequency,
    PayPeriod,
    Period,
    advance_anchor_to_most_recent_period,
    completed_pay_periods,
    did_miss_payday,
    resolve_current_pay_period,
    resolve_period,
)
from recurrence import bills_due_in_period
from schemas import (
    BudgetAnalysisOut,
    BudgetCategoryIn,
    BudgetSummaryOut,
    CategoryAnalysisOut,
    CategoryOverspendOut,
    ManualPendingIn,
    OverspendingAnalysisOut,
    OverspendPeriodOut,
    OverspendSummaryOut,
    OverspendTransactionOut,
    PayPeriodOut,
    PaySettingsIn,
    PendingBillOut,
    ProblemCategoryOut,
    RecurringBillIn,
    TrackingCategoryOut,
    TransactionIn,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DEFAULT_PAY_FREQUENCY = PayFrequency.biweekly


def amount_to_cents(value, *, field: str = "amount") -> int:
    amount = to_amount(value, field=field)
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_money(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def spend_view(txn: Transaction) -> SpendTransaction:
    return SpendTransaction(
        amount=cents_to_amount(txn.amount_cents),
        cash_back=cents_to_amount(txn.cash_back_cents),
        cashback_posted=bool(txn.cashback_posted),
        pending=bool(txn.pending),
        pending_tip_amount=cents_to_amount(txn.pending_tip_cents),
        credit_card_pending=bool(txn.credit_card_pending),
    )


@dataclass(frozen=True)
class PaySchedule:
    last_pay_date: date
    frequency: PayFrequency
    is_default: bool


class PaySettingsService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self) -> Optional[PaySettings]:
        stmt = select(PaySettings).order_by(PaySettings.id.desc()).limit(1)
        return self.session.scalar(stmt)

    def schedule(self, today: date) -> PaySchedule:
        """Stored schedule, or a biweekly one anchored on ``today``."""
        settings = self.get()
        if settings is None:
            return PaySchedule(
                last_pay_date=today, frequency=DEFAULT_PAY_FREQUENCY, is_default=True
            )
        return PaySchedule(
            last_pay_date=settings.last_pay_date,
            frequency=PayFrequency.parse(settings.frequency),
            is_default=False,
        )

    def save(self, data: PaySettingsIn) -> PaySettings:
        frequency = PayFrequency.parse(data.frequency)
        # only one schedule is kept
        self.session.execute(delete(PaySettings))
        settings = PaySettings(last_pay_date=data.last_pay_date, frequency=frequency)
        self.session.add(settings)
        self.session.commit()
        self.session.refresh(settings)
        logger.info(
            "pay_settings_saved: last_pay_date=%s frequency=%s",
            settings.last_pay_date.isoformat(),
            frequency.value,
        )
        return settings

    def advance_anchor(self, today: date) -> PaySettings:
        settings = self.get()
        if settings is None:
            raise ValueError("Pay settings are not configured")
        previous = settings.last_pay_date
        advanced = advance_anchor_to_most_recent_period(
            previous, settings.frequency, today
        )
        if advanced != previous:
            settings.last_pay_date = advanced
            self.session.commit()
            self.session.refresh(settings)
            logger.info(
                "pay_anchor_advanced: from=%s to=%s",
                previous.isoformat(),
                advanced.isoformat(),
            )
        return settings

    def current_pay_period(self, today: date) -> PayPeriod:
        schedule = self.schedule(today)
        return resolve_current_pay_period(
            schedule.last_pay_date, schedule.frequency, today
        )

    def pay_period_overview(self, today: date) -> PayPeriodOut:
        schedule = self.schedule(today)
        period = resolve_current_pay_period(
            schedule.last_pay_date, schedule.frequency, today
        )
        next_pay = period.end + date.resolution
        return PayPeriodOut(
            start_date=period.start,
            end_date=period.end,
            frequency=schedule.frequency.value,
            last_pay_date=schedule.last_pay_date,
            next_pay_date=next_pay,
            days_in_period=inclusive_day_count(period.start, period.end),
            days_until_payday=(next_pay - today).days,
            missed_payday=did_miss_payday(
                schedule.last_pay_date, schedule.frequency, today
            ),
            suggested_last_pay_date=advance_anchor_to_most_recent_period(
                schedule.last_pay_date, schedule.frequency, today
            ),
            is_default_settings=schedule.is_default,
        )


class BudgetCategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, *, include_inactive: bool = False) -> list[BudgetCategory]:
        stmt = select(BudgetCategory).order_by(BudgetCategory.name, BudgetCategory.id)
        if not include_inactive:
            stmt = stmt.where(BudgetCategory.is_active.is_(True))
        return list(self.session.scalars(stmt).all())

    def get(self, category_id: int) -> BudgetCategory:
        category = self.session.get(BudgetCategory, category_id)
        if not category:
            raise ValueError("Category not found")
        return category

    def create(self, data: BudgetCategoryIn) -> BudgetCategory:
        category = BudgetCategory(
            name=data.name.strip(),
            allocated_cents=amount_to_cents(
                data.allocated_amount, field="allocated_amount"
            ),
            color=data.color,
            is_active=data.is_active,
            is_budget_category=data.is_budget_category,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def update(self, category_id: int, data: BudgetCategoryIn) -> BudgetCategory:
        category = self.get(category_id)
        category.name = data.name.strip()
        category.allocated_cents = amount_to_cents(
            data.allocated_amount, field="allocated_amount"
        )
        category.color = data.color
        category.is_active = data.is_active
        category.is_budget_category = data.is_budget_category
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        self.session.delete(category)
        self.session.commit()


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and not self.session.get(
            BudgetCategory, category_id
        ):
            raise ValueError("Category not found")

    def _apply(self, txn: Transaction, data: TransactionIn) -> None:
        txn.date = data.date
        txn.name = data.name.strip()
        txn.amount_cents = amount_to_cents(data.amount)
        txn.category_id = data.category_id
        txn.cash_back_cents = amount_to_cents(data.cash_back, field="cash_back")
        txn.cashback_posted = data.cashback_posted
        txn.notes = data.notes
        txn.pending = data.pending
        txn.pending_tip_cents = amount_to_cents(
            data.pending_tip_amount, field="pending_tip_amount"
        )
        txn.credit_card_pending = data.credit_card_pending
        txn.sort_order = data.sort_order

    def list_in_range(
        self, start: date, end: date, *, category_id: Optional[int] = None
    ) -> list[Transaction]:
        if start > end:
            raise ValueError("Start date must be before end date")
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.date.between(start, end))
            .order_by(
                Transaction.date.desc(), Transaction.sort_order, Transaction.id.desc()
            )
        )
        if category_id is not None:
            stmt = stmt.where(Transaction.category_id == category_id)
        return list(self.session.scalars(stmt).all())

    def get(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.id == transaction_id)
        )
        txn = self.session.scalar(stmt)
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> Transaction:
        self._check_category(data.category_id)
        txn = Transaction()
        self._apply(txn, data)
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        self._check_category(data.category_id)
        self._apply(txn, data)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()


class BudgetAnalysisService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def resolve_range(
        self,
        period_type: str,
        start: Optional[str],
        end: Optional[str],
        *,
        today: date,
    ) -> tuple[PeriodType, Period]:
        kind = PeriodType.parse(period_type)
        if kind is PeriodType.biweekly:
            pay_period = PaySettingsService(self.session).current_pay_period(today)
            return kind, Period("biweekly", pay_period.start, pay_period.end)
        if kind is PeriodType.custom:
            return kind, resolve_period("custom", start, end, today=today)
        month = resolve_period(None, None, None, today=today)
        if start or end:
            # a missing bound falls back to the calendar month
            explicit = resolve_period(
                "custom",
                start or month.start.isoformat(),
                end or month.end.isoformat(),
                today=today,
            )
            return kind, Period("month", explicit.start, explicit.end)
        return kind, month

    def _transactions_by_category(
        self, period: Period
    ) -> dict[int, list[SpendTransaction]]:
        stmt = select(Transaction).where(
            Transaction.date.between(period.start, period.end),
            Transaction.category_id.is_not(None),
        )
        grouped: dict[int, list[SpendTransaction]] = defaultdict(list)
        for txn in self.session.scalars(stmt):
            grouped[txn.category_id].append(spend_view(txn))
        return grouped

    def analyze(
        self,
        period_type: str = "month",
        start: Optional[str] = None,
        end: Optional[str] = None,
        *,
        today: date,
    ) -> BudgetAnalysisOut:
        kind, period = self.resolve_range(period_type, start, end, today=today)
        days_in_period = inclusive_day_count(period.start, period.end)
        categories = BudgetCategoryService(self.session).list_all()
        spending = self._transactions_by_category(period)

        rows: list[tuple[BudgetCategory, CategoryAdjustment]] = []
        tracking: list[tuple[BudgetCategory, CategorySpendAggregate]] = []
        for category in categories:
            aggregate = aggregate_transactions(
                category.id, spending.get(category.id, [])
            )
            if not category.is_budget_category:
                tracking.append((category, aggregate))
                continue
            full_month = cents_to_amount(category.allocated_cents)
            allocated = prorated_allocation(full_month, kind, period)
            rows.append(
                (
                    category,
                    adjust_category(
                        aggregate, allocated, full_month_amount=full_month
                    ),
                )
            )

        totals = summarize(
            [row for _, row in rows], [aggregate for _, aggregate in tracking]
        )
        if period.start <= today <= period.end:
            days_remaining = inclusive_day_count(today, period.end)
        else:
            days_remaining = 0

        logger.debug(
            "budget_analysis: period_type=%s start=%s end=%s categories=%d",
            kind.value,
            period.start.isoformat(),
            period.end.isoformat(),
            len(rows),
        )
        return BudgetAnalysisOut(
            categories=[
                CategoryAnalysisOut(
                    id=category.id,
                    name=category.name,
                    color=category.color,
                    allocated_amount=to_money(row.allocated_amount),
                    full_month_amount=to_money(row.full_month_amount),
                    raw_spent=to_money(row.aggregate.raw_spent),
                    spent=to_money(row.spent),
                    adjusted_spent=to_money(row.adjusted_spent),
                    remaining=to_money(row.remaining),
                    cash_back=to_money(row.aggregate.cash_back),
                    pending_tip_amount=to_money(row.aggregate.pending_tip_amount),
                    pending_cashback_amount=to_money(
                        row.aggregate.pending_cashback_amount
                    ),
                    credit_card_pending_amount=to_money(
                        row.aggregate.credit_card_pending_amount
                    ),
                    days_in_period=days_in_period,
                )
                for category, row in rows
            ],
            tracking_categories=[
                TrackingCategoryOut(
                    id=category.id,
                    name=category.name,
                    color=category.color,
                    spent=to_money(aggregate.spent),
                    adjusted_spent=to_money(aggregate.adjusted_spent),
                )
                for category, aggregate in tracking
            ],
            summary=BudgetSummaryOut(
                total_allocated=to_money(totals.total_allocated),
                total_monthly_allocated=to_money(totals.total_monthly_allocated),
                total_raw_spent=to_money(totals.total_raw_spent),
                total_cash_back=to_money(totals.total_cash_back),
                total_spent=to_money(totals.total_spent),
                total_adjusted_spent=to_money(totals.total_adjusted_spent),
                total_remaining=to_money(totals.total_remaining),
                total_pending_tip_amount=to_money(totals.total_pending_tip_amount),
                total_pending_cashback_amount=to_money(
                    totals.total_pending_cashback_amount
                ),
                total_credit_card_pending_amount=to_money(
                    totals.total_credit_card_pending_amount
                ),
                big_purchase_spent=to_money(totals.big_purchase_spent),
                daily_budget_remaining=to_money(
                    daily_budget_remaining(totals, days_remaining)
                ),
                start_date=period.start,
                end_date=period.end,
                days_in_period=days_in_period,
                period_type=kind.value,
            ),
        )


class RecurringBillService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[RecurringBill]:
        stmt = select(RecurringBill).order_by(RecurringBill.due_day, RecurringBill.id)
        return list(self.session.scalars(stmt).all())

    def get(self, bill_id: int) -> RecurringBill:
        bill = self.session.get(RecurringBill, bill_id)
        if not bill:
            raise ValueError("Recurring bill not found")
        return bill

    def create(self, data: RecurringBillIn) -> RecurringBill:
        bill = RecurringBill(
            name=data.name.strip(),
            amount_cents=amount_to_cents(data.amount),
            due_day=data.due_day,
            is_essential=data.is_essential,
            notes=data.notes,
        )
        self.session.add(bill)
        self.session.commit()
        self.session.refresh(bill)
        return bill

    def delete(self, bill_id: int) -> None:
        bill = self.get(bill_id)
        self.session.delete(bill)
        self.session.commit()

    def _current_period(self, today: date) -> PayPeriod:
        settings = PaySettingsService(self.session)
        if settings.get() is None:
            raise ValueError("Pay settings are not configured")
        return settings.current_pay_period(today)

    def pending_for_current_period(self, today: date) -> list[PendingBillOut]:
        settings = PaySettingsService(self.session)
        if settings.get() is None:
            return []
        period = settings.current_pay_period(today)
        bills = {bill.id: bill for bill in self.list_all()}
        due = bills_due_in_period(
            [(bill.id, bill.due_day) for bill in bills.values()], period, today
        )

        completed_ids = set(
            self.session.scalars(
                select(CompletedBill.bill_id).where(
                    CompletedBill.pay_period_start == period.start,
                    CompletedBill.pay_period_end == period.end,
                )
            )
        )
        overrides = {
            override.bill_id: override.amount_cents
            for override in self.session.scalars(
                select(PendingBillOverride).where(
                    PendingBillOverride.pay_period_start == period.start,
                    PendingBillOverride.pay_period_end == period.end,
                )
            )
        }

        pending: list[PendingBillOut] = []
        for item in due:
            bill = bills[item.bill_id]
            amount_cents = overrides.get(bill.id, bill.amount_cents)
            pending.append(
                PendingBillOut(
                    id=bill.id,
                    name=bill.name,
                    amount=to_money(cents_to_amount(amount_cents)),
                    base_amount=to_money(cents_to_amount(bill.amount_cents)),
                    is_overridden=bill.id in overrides,
                    due_date=item.due_date,
                    days_until_due=item.days_until_due,
                    pay_period_start=period.start,
                    pay_period_end=period.end,
                    is_completed=bill.id in completed_ids,
                    is_essential=bill.is_essential,
                )
            )
        return pending

    def _completion(self, bill_id: int, period: PayPeriod) -> Optional[CompletedBill]:
        return self.session.scalar(
            select(CompletedBill).where(
                CompletedBill.bill_id == bill_id,
                CompletedBill.pay_period_start == period.start,
                CompletedBill.pay_period_end == period.end,
            )
        )

    def mark_completed(self, bill_id: int, today: date) -> CompletedBill:
        bill = self.get(bill_id)
        period = self._current_period(today)
        existing = self._completion(bill.id, period)
        if existing:
            return existing
        completion = CompletedBill(
            bill_id=bill.id,
            completed_date=today,
            pay_period_start=period.start,
            pay_period_end=period.end,
        )
        self.session.add(completion)
        self.session.commit()
        self.session.refresh(completion)
        logger.info(
            "bill_completed: bill_id=%s period=%s..%s",
            bill.id,
            period.start.isoformat(),
            period.end.isoformat(),
        )
        return completion

    def unmark_completed(self, bill_id: int, today: date) -> None:
        bill = self.get(bill_id)
        period = self._current_period(today)
        existing = self._completion(bill.id, period)
        if not existing:
            raise ValueError("Bill is not completed for this pay period")
        self.session.delete(existing)
        self.session.commit()

    def override_amount(
        self, bill_id: int, amount: Decimal, today: date
    ) -> PendingBillOverride:
        """Change what a bill costs in the current pay period only."""
        bill = self.get(bill_id)
        period = self._current_period(today)
        amount_cents = amount_to_cents(amount)
        override = self.session.scalar(
            select(PendingBillOverride).where(
                PendingBillOverride.bill_id == bill.id,
                PendingBillOverride.pay_period_start == period.start,
                PendingBillOverride.pay_period_end == period.end,
            )
        )
        if override:
            override.amount_cents = amount_cents
        else:
            override = PendingBillOverride(
                bill_id=bill.id,
                amount_cents=amount_cents,
                pay_period_start=period.start,
                pay_period_end=period.end,
            )
            self.session.add(override)
        self.session.commit()
        self.session.refresh(override)
        return override


class ManualPendingService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(
        self,
        pay_period_start: Optional[date] = None,
        pay_period_end: Optional[date] = None,
    ) -> list[ManualPendingTransaction]:
        stmt = (
            select(ManualPendingTransaction)
            .options(joinedload(ManualPendingTransaction.category))
            .order_by(ManualPendingTransaction.due_date, ManualPendingTransaction.id)
        )
        # both bounds select one pay period, otherwise everything is listed
        if pay_period_start and pay_period_end:
            stmt = stmt.where(
                ManualPendingTransaction.pay_period_start == pay_period_start,
                ManualPendingTransaction.pay_period_end == pay_period_end,
            )
        return list(self.session.scalars(stmt).all())

    @staticmethod
    def totals(items: list[ManualPendingTransaction]) -> tuple[Decimal, Decimal]:
        """Total of every item, and of the ones not completed yet."""
        total = sum((cents_to_amount(item.amount_cents) for item in items), Decimal(0))
        pending = sum(
            (
                cents_to_amount(item.amount_cents)
                for item in items
                if not item.is_completed
            ),
            Decimal(0),
        )
        return total, pending

    def get(self, item_id: int) -> ManualPendingTransaction:
        item = self.session.get(ManualPendingTransaction, item_id)
        if not item:
            raise ValueError("Pending transaction not found")
        return item

    def _apply(self, item: ManualPendingTransaction, data: ManualPendingIn) -> None:
        if data.pay_period_end < data.pay_period_start:
            raise ValueError("Pay period end must not be before its start")
        if data.category_id is not None and not self.session.get(
            BudgetCategory, data.category_id
        ):
            raise ValueError("Category not found")
        item.name = data.name.strip()
        item.amount_cents = amount_to_cents(data.amount)
        item.due_date = data.due_date
        item.category_id = data.category_id
        item.notes = data.notes
        item.pay_period_start = data.pay_period_start
        item.pay_period_end = data.pay_period_end
        item.is_completed = data.is_completed

    def create(self, data: ManualPendingIn) -> ManualPendingTransaction:
        item = ManualPendingTransaction()
        self._apply(item, data)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def update(self, item_id: int, data: ManualPendingIn) -> ManualPendingTransaction:
        item = self.get(item_id)
        self._apply(item, data)
        self.session.commit()
        self.session.refresh(item)
        return item

    def set_completed(self, item_id: int, completed: bool) -> ManualPendingTransaction:
        item = self.get(item_id)
        item.is_completed = completed
        self.session.commit()
        self.session.refresh(item)
        logger.info(
            "manual_pending_completed: id=%s completed=%s", item.id, completed
        )
        return item

    def delete(self, item_id: int) -> None:
        item = self.get(item_id)
        self.session.delete(item)
        self.session.commit()


DEFAULT_OVERSPEND_PERIODS = 6
MAX_OVERSPEND_PERIODS = 26
BIGGEST_TRANSACTIONS = 10
PROBLEM_CATEGORIES = 5


def overspend_txn_out(txn: Transaction) -> OverspendTransactionOut:
    return OverspendTransactionOut(
        id=txn.id,
        date=txn.date,
        name=txn.name,
        amount=to_money(abs(cents_to_amount(txn.amount_cents))),
        category_id=txn.category_id,
    )


class OverspendingService:
    """Overspending across the most recent completed pay periods."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _period(
        self, period: PayPeriod, categories: list[BudgetCategory]
    ) -> OverspendPeriodOut:
        stmt = (
            select(Transaction)
            .where(Transaction.date.between(period.start, period.end))
            .order_by(Transaction.date, Transaction.id)
        )
        transactions = list(self.session.scalars(stmt).all())
        by_category: dict[int, list[Transaction]] = defaultdict(list)
        for txn in transactions:
            if txn.category_id is not None:
                by_category[txn.category_id].append(txn)

        day_count = inclusive_day_count(period.start, period.end)
        total_budget = Decimal(0)
        total_spent = Decimal(0)
        rows: list[tuple[BudgetCategory, Overspend, list[Transaction]]] = []
        for category in categories:
            items = by_category.get(category.id, [])
            budget = day_rate_allocation(
                cents_to_amount(category.allocated_cents), day_count
            )
            spent = aggregate_transactions(
                category.id, [spend_view(txn) for txn in items]
            ).raw_spent
            total_budget += budget
            total_spent += spent
            result = overspend(spent, budget)
            if result.amount > 0:
                rows.append((category, result, items))
        rows.sort(key=lambda row: row[1].amount, reverse=True)

        biggest = sorted(
            transactions,
            key=lambda txn: (abs(txn.amount_cents), txn.date, txn.id),
            reverse=True,
        )[:BIGGEST_TRANSACTIONS]

        return OverspendPeriodOut(
            start_date=period.start,
            end_date=period.end,
            total_budget=to_money(total_budget),
            total_spent=to_money(total_spent),
            overspent=to_money(overspend(total_spent, total_budget).amount),
            categories=[
                CategoryOverspendOut(
                    id=category.id,
                    name=category.name,
                    color=category.color,
                    budget_amount=to_money(result.budget),
                    spent=to_money(result.spent),
                    overspent=to_money(result.amount),
                    overspent_percentage=to_money(result.percentage),
                    transactions=[overspend_txn_out(txn) for txn in items],
                )
                for category, result, items in rows
            ],
            biggest_transactions=[overspend_txn_out(txn) for txn in biggest],
        )

    def analyze(
        self, periods: int = DEFAULT_OVERSPEND_PERIODS, *, today: date
    ) -> OverspendingAnalysisOut:
        if not 1 <= periods <= MAX_OVERSPEND_PERIODS:
            raise ValueError(
                f"Periods must be between 1 and {MAX_OVERSPEND_PERIODS}, got {periods}"
            )
        settings = PaySettingsService(self.session).get()
        if settings is None:
            raise ValueError("Pay settings are not configured")

        categories = [
            category
            for category in BudgetCategoryService(self.session).list_all()
            if category.is_budget_category
        ]
        pay_periods = completed_pay_periods(
            settings.last_pay_date, settings.frequency, today, periods
        )
        results = [self._period(period, categories) for period in pay_periods]

        problems: dict[int, dict] = {}
        for result in results:
            for row in result.categories:
                entry = problems.setdefault(
                    row.id,
                    {
                        "name": row.name,
                        "color": row.color,
                        "total": Decimal(0),
                        "occurrences": 0,
                    },
                )
                entry["total"] += to_amount(row.overspent)
                entry["occurrences"] += 1
        ranked = sorted(
            problems.items(), key=lambda item: (-item[1]["total"], item[0])
        )[:PROBLEM_CATEGORIES]

        total_overspent = sum(
            (to_amount(result.overspent) for result in results), Decimal(0)
        )
        logger.debug(
            "overspending_analysis: periods=%d first_start=%s",
            len(results),
            pay_periods[0].start.isoformat(),
        )
        return OverspendingAnalysisOut(
            periods=results,
            summary=OverspendSummaryOut(
                total_overspent=to_money(total_overspent),
                average_overspent=to_money(total_overspent / len(results)),
                periods_analyzed=len(results),
                problematic_categories=[
                    ProblemCategoryOut(
                        id=category_id,
                        name=entry["name"],
                        color=entry["color"],
                        total_overspent=to_money(entry["total"]),
                        occurrences=entry["occurrences"],
                        average_overspent=to_money(
                            entry["total"] / entry["occurrences"]
                        ),
                    )
                    for category_id, entry in ranked
                ],
            ),
            pay_frequency=PayFrequency.parse(settings.frequency).value,
        )
