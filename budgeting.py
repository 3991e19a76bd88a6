from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from periods import PayPeriod, Period

Amount = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HALF = Decimal("0.5")


class PeriodType(str, Enum):
    month = "month"
    biweekly = "biweekly"
    custom = "custom"

    @classmethod
    def parse(cls, value: "str | PeriodType") -> "PeriodType":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f'Period type must be "month", "biweekly" or "custom", got {value!r}'
            ) from None


def to_amount(value: Amount, *, field: str = "amount") -> Decimal:
    if isinstance(value, float):
        # via str so 0.1 stays 0.1
        value = str(value)
    try:
        amount = Decimal(value)
    except ArithmeticError as exc:
        raise ValueError(f"{field} is not a number: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"{field} must be a finite number, got {value!r}")
    return amount


def cents_to_amount(cents: Optional[int]) -> Decimal:
    return Decimal(cents or 0) / 100


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def inclusive_day_count(start: date, end: date) -> int:
    if end < start:
        raise ValueError(
            f"End date {end.isoformat()} is before start date {start.isoformat()}"
        )
    return (end - start).days + 1


def prorated_allocation(
    monthly_amount: Amount,
    period_type: "str | PeriodType",
    period: Union[Period, PayPeriod],
) -> Decimal:
    """Scale a full-month allocation to ``period``.

    Biweekly periods always get exactly half of the month, whatever their
    length. Custom periods are divided by the length of the month that
    contains ``period.start``, even when the range spans into the next month.
    """
    kind = PeriodType.parse(period_type)
    amount = to_amount(monthly_amount, field="monthly_amount")
    day_count = inclusive_day_count(period.start, period.end)
    if kind is PeriodType.month:
        return amount
    if kind is PeriodType.biweekly:
        return amount * HALF
    month_days = days_in_month(period.start.year, period.start.month)
    return amount * day_count / month_days


@dataclass(frozen=True)
class SpendTransaction:
    amount: Decimal
    cash_back: Decimal = ZERO
    cashback_posted: bool = True
    pending: bool = False
    pending_tip_amount: Decimal = ZERO
    credit_card_pending: bool = False


@dataclass(frozen=True)
class CategorySpendAggregate:
    category_id: Optional[int]
    raw_spent: Decimal = ZERO
    cash_back: Decimal = ZERO
    pending_tip_amount: Decimal = ZERO
    pending_cashback_amount: Decimal = ZERO
    credit_card_pending_amount: Decimal = ZERO

    @property
    def spent(self) -> Decimal:
        return self.raw_spent - self.cash_back

    @property
    def adjusted_spent(self) -> Decimal:
        return (
            self.spent
            + self.pending_tip_amount
            - self.pending_cashback_amount
            + self.credit_card_pending_amount
        )


def aggregate_transactions(
    category_id: Optional[int], transactions: Iterable[SpendTransaction]
) -> CategorySpendAggregate:
    raw_spent = ZERO
    cash_back = ZERO
    pending_tip = ZERO
    pending_cashback = ZERO
    credit_card_pending = ZERO
    for txn in transactions:
        amount = to_amount(txn.amount)
        txn_cash_back = to_amount(txn.cash_back, field="cash_back")
        raw_spent += abs(amount)
        # posted cashback reduces spend, unposted cashback is still pending
        if txn.cashback_posted:
            cash_back += txn_cash_back
        elif txn_cash_back > 0:
            pending_cashback += txn_cash_back
        if txn.pending:
            pending_tip += to_amount(txn.pending_tip_amount, field="pending_tip_amount")
        if txn.credit_card_pending:
            credit_card_pending += amount
    return CategorySpendAggregate(
        category_id=category_id,
        raw_spent=raw_spent,
        cash_back=cash_back,
        pending_tip_amount=pending_tip,
        pending_cashback_amount=pending_cashback,
        credit_card_pending_amount=credit_card_pending,
    )


@dataclass(frozen=True)
class CategoryAdjustment:
    aggregate: CategorySpendAggregate
    allocated_amount: Decimal
    full_month_amount: Decimal
    spent: Decimal
    adjusted_spent: Decimal
    remaining: Decimal


def adjust_category(
    aggregate: CategorySpendAggregate,
    allocated_amount: Amount,
    *,
    full_month_amount: Optional[Amount] = None,
) -> CategoryAdjustment:
    allocated = to_amount(allocated_amount, field="allocated_amount")
    full_month = (
        allocated
        if full_month_amount is None
        else to_amount(full_month_amount, field="full_month_amount")
    )
    adjusted_spent = aggregate.adjusted_spent
    return CategoryAdjustment(
        aggregate=aggregate,
        allocated_amount=allocated,
        full_month_amount=full_month,
        spent=aggregate.spent,
        adjusted_spent=adjusted_spent,
        remaining=allocated - adjusted_spent,
    )


@dataclass(frozen=True)
class BudgetTotals:
    total_allocated: Decimal
    total_monthly_allocated: Decimal
    total_raw_spent: Decimal
    total_cash_back: Decimal
    total_spent: Decimal
    total_pending_tip_amount: Decimal
    total_pending_cashback_amount: Decimal
    total_credit_card_pending_amount: Decimal
    total_adjusted_spent: Decimal
    total_remaining: Decimal
    big_purchase_spent: Decimal


def summarize(
    rows: Sequence[CategoryAdjustment],
    tracking: Sequence[CategorySpendAggregate] = (),
) -> BudgetTotals:
    """Sum budget rows and tracking aggregates into portfolio totals.

    Tracking (big purchase) categories count toward every spend total but
    never toward the allocated totals.
    """
    aggregates = [row.aggregate for row in rows] + list(tracking)
    total_allocated = sum((row.allocated_amount for row in rows), ZERO)
    total_adjusted = sum((agg.adjusted_spent for agg in aggregates), ZERO)
    return BudgetTotals(
        total_allocated=total_allocated,
        total_monthly_allocated=sum((row.full_month_amount for row in rows), ZERO),
        total_raw_spent=sum((agg.raw_spent for agg in aggregates), ZERO),
        total_cash_back=sum((agg.cash_back for agg in aggregates), ZERO),
        total_spent=sum((agg.spent for agg in aggregates), ZERO),
        total_pending_tip_amount=sum(
            (agg.pending_tip_amount for agg in aggregates), ZERO
        ),
        total_pending_cashback_amount=sum(
            (agg.pending_cashback_amount for agg in aggregates), ZERO
        ),
        total_credit_card_pending_amount=sum(
            (agg.credit_card_pending_amount for agg in aggregates), ZERO
        ),
        total_adjusted_spent=total_adjusted,
        total_remaining=total_allocated - total_adjusted,
        big_purchase_spent=sum((agg.adjusted_spent for agg in tracking), ZERO),
    )


def daily_budget_remaining(totals: BudgetTotals, days_remaining: int) -> Decimal:
    # pending cashback does not count toward the daily figure
    if days_remaining <= 0:
        return ZERO
    spent = totals.total_spent + totals.total_pending_tip_amount
    return (totals.total_allocated - spent) / days_remaining


# overspending history prorates by a flat 30-day month
OVERSPEND_MONTH_DAYS = 30


def day_rate_allocation(monthly_amount: Amount, day_count: int) -> Decimal:
    amount = to_amount(monthly_amount, field="monthly_amount")
    return amount * day_count / OVERSPEND_MONTH_DAYS


@dataclass(frozen=True)
class Overspend:
    budget: Decimal
    spent: Decimal
    amount: Decimal
    percentage: Decimal


def overspend(spent: Amount, budget: Amount) -> Overspend:
    """How far ``spent`` went past ``budget``; never negative.

    The percentage is relative to the budget and is 0 when there is no budget.
    """
    spent_amount = to_amount(spent, field="spent")
    budget_amount = to_amount(budget, field="budget")
    over = max(ZERO, spent_amount - budget_amount)
    percentage = over / budget_amount * 100 if budget_amount > 0 else ZERO
    return Overspend(
        budget=budget_amount, spent=spent_amount, amount=over, percentage=percentage
    )
