from datetime import date
from decimal import Decimal

import pytest

from budgeting import (
    CategorySpendAggregate,
    SpendTransaction,
    adjust_category,
    aggregate_transactions,
    daily_budget_remaining,
    day_rate_allocation,
    days_in_month,
    inclusive_day_count,
    overspend,
    prorated_allocation,
    summarize,
    to_amount,
)
from periods import PayPeriod, Period


def test_biweekly_allocation_is_exactly_half():
    for period in (
        PayPeriod(date(2024, 2, 1), date(2024, 2, 14)),
        PayPeriod(date(2024, 1, 19), date(2024, 2, 1)),
        PayPeriod(date(2024, 4, 1), date(2024, 4, 7)),
    ):
        assert prorated_allocation(1000, "biweekly", period) == 500
    assert prorated_allocation("333.33", "biweekly", period) == Decimal("166.665")


def test_month_allocation_is_unchanged():
    period = Period("this_month", date(2024, 2, 1), date(2024, 2, 29))
    assert prorated_allocation(Decimal("450.25"), "month", period) == Decimal("450.25")


@pytest.mark.parametrize("amount", ["300", "123.45", "1000", "0.07"])
@pytest.mark.parametrize(
    "year, month", [(2024, 2), (2023, 2), (2024, 4), (2024, 12), (2025, 1)]
)
def test_custom_full_month_reduces_to_monthly_amount(amount, year, month):
    period = Period(
        "custom", date(year, month, 1), date(year, month, days_in_month(year, month))
    )
    assert prorated_allocation(amount, "custom", period) == Decimal(amount)


def test_custom_ten_days_of_leap_february():
    period = Period("custom", date(2024, 2, 10), date(2024, 2, 19))
    allocation = prorated_allocation(300, "custom", period)
    assert allocation == Decimal(300) * 10 / 29
    assert allocation.quantize(Decimal("0.01")) == Decimal("103.45")


def test_custom_range_spanning_months_uses_start_month_length():
    period = Period("custom", date(2024, 1, 25), date(2024, 2, 5))
    assert prorated_allocation(310, "custom", period) == Decimal("120")


def test_proration_rejects_bad_input():
    period = Period("custom", date(2024, 2, 10), date(2024, 2, 19))
    with pytest.raises(ValueError, match="Period type"):
        prorated_allocation(100, "weekly", period)
    with pytest.raises(ValueError, match="finite"):
        prorated_allocation(float("nan"), "month", period)
    with pytest.raises(ValueError, match="finite"):
        prorated_allocation(Decimal("Infinity"), "custom", period)
    with pytest.raises(ValueError, match="before start"):
        prorated_allocation(
            100, "custom", Period("custom", date(2024, 2, 19), date(2024, 2, 10))
        )


def test_inclusive_day_count():
    assert inclusive_day_count(date(2024, 2, 10), date(2024, 2, 10)) == 1
    assert inclusive_day_count(date(2024, 2, 10), date(2024, 2, 19)) == 10
    assert inclusive_day_count(date(2023, 12, 31), date(2024, 1, 1)) == 2
    with pytest.raises(ValueError):
        inclusive_day_count(date(2024, 1, 2), date(2024, 1, 1))


def test_to_amount_keeps_decimal_float_values():
    assert to_amount(0.1) == Decimal("0.1")
    with pytest.raises(ValueError, match="not a number"):
        to_amount("twelve")


def test_adjusted_spend_and_remaining():
    aggregate = CategorySpendAggregate(
        category_id=1,
        raw_spent=Decimal("100"),
        cash_back=Decimal("10"),
        pending_tip_amount=Decimal("5"),
        pending_cashback_amount=Decimal("0"),
        credit_card_pending_amount=Decimal("20"),
    )
    row = adjust_category(aggregate, 150)
    assert row.spent == 90
    assert row.adjusted_spent == 115
    assert row.remaining == 35
    assert row.full_month_amount == 150


def test_transaction_flags_are_classified_independently():
    transactions = [
        SpendTransaction(
            amount=Decimal("40"),
            cash_back=Decimal("2"),
            cashback_posted=False,
            pending=True,
            pending_tip_amount=Decimal("6"),
            credit_card_pending=True,
        ),
        SpendTransaction(amount=Decimal("-10")),
        SpendTransaction(
            amount=Decimal("25"),
            cash_back=Decimal("1"),
            cashback_posted=True,
            pending=False,
            pending_tip_amount=Decimal("3"),
        ),
    ]
    aggregate = aggregate_transactions(7, transactions)
    assert aggregate.category_id == 7
    assert aggregate.raw_spent == 75
    assert aggregate.cash_back == 1
    assert aggregate.pending_tip_amount == 6
    assert aggregate.pending_cashback_amount == 2
    assert aggregate.credit_card_pending_amount == 40
    assert aggregate.spent == 74
    assert aggregate.adjusted_spent == 118


def test_empty_category_aggregates_to_zero():
    aggregate = aggregate_transactions(3, [])
    row = adjust_category(aggregate, Decimal("200"))
    assert aggregate.adjusted_spent == 0
    assert row.remaining == 200


def test_pending_cashback_can_make_adjusted_spend_negative():
    aggregate = aggregate_transactions(
        1,
        [
            SpendTransaction(
                amount=Decimal("5"), cash_back=Decimal("8"), cashback_posted=False
            )
        ],
    )
    assert aggregate.cash_back == 0
    assert aggregate.pending_cashback_amount == 8
    assert aggregate.spent == 5
    assert aggregate.adjusted_spent == -3
    assert adjust_category(aggregate, 10).remaining == 13


def test_cashback_counts_once_posted_or_pending():
    unposted = aggregate_transactions(
        1,
        [
            SpendTransaction(
                amount=Decimal("100"), cash_back=Decimal("10"), cashback_posted=False
            )
        ],
    )
    assert unposted.cash_back == 0
    assert unposted.spent == 100
    assert unposted.adjusted_spent == 90

    posted = aggregate_transactions(
        1, [SpendTransaction(amount=Decimal("100"), cash_back=Decimal("10"))]
    )
    assert posted.cash_back == 10
    assert posted.pending_cashback_amount == 0
    assert posted.spent == 90
    assert posted.adjusted_spent == 90


def test_summary_totals_include_tracking_spend_but_not_allocation():
    groceries = adjust_category(
        CategorySpendAggregate(
            category_id=1,
            raw_spent=Decimal("120"),
            cash_back=Decimal("10"),
            credit_card_pending_amount=Decimal("20"),
        ),
        Decimal("300"),
        full_month_amount=Decimal("600"),
    )
    dining = adjust_category(
        CategorySpendAggregate(
            category_id=2,
            raw_spent=Decimal("40"),
            pending_tip_amount=Decimal("8"),
            pending_cashback_amount=Decimal("2"),
        ),
        Decimal("150"),
        full_month_amount=Decimal("300"),
    )
    vacation = CategorySpendAggregate(category_id=3, raw_spent=Decimal("250"))

    totals = summarize([groceries, dining], [vacation])

    assert totals.total_allocated == 450
    assert totals.total_monthly_allocated == 900
    assert totals.total_raw_spent == 410
    assert totals.total_cash_back == 10
    assert totals.total_spent == 400
    assert totals.total_pending_tip_amount == 8
    assert totals.total_pending_cashback_amount == 2
    assert totals.total_credit_card_pending_amount == 20
    assert totals.big_purchase_spent == 250
    assert totals.total_adjusted_spent == (
        groceries.adjusted_spent + dining.adjusted_spent + totals.big_purchase_spent
    )
    assert totals.total_adjusted_spent == 426
    assert totals.total_remaining == 24


def test_daily_budget_remaining():
    totals = summarize(
        [
            adjust_category(
                CategorySpendAggregate(
                    category_id=1,
                    raw_spent=Decimal("100"),
                    pending_tip_amount=Decimal("20"),
                    pending_cashback_amount=Decimal("50"),
                ),
                Decimal("500"),
            )
        ]
    )
    assert daily_budget_remaining(totals, 4) == Decimal("95")
    assert daily_budget_remaining(totals, 0) == 0


def test_overspend_against_day_rate_budget():
    budget = day_rate_allocation(600, 14)
    assert budget == 280

    result = overspend(Decimal("350"), budget)
    assert result.amount == 70
    assert result.percentage == 25

    assert overspend(Decimal("100"), Decimal("140")).amount == 0
    unbudgeted = overspend(Decimal("20"), 0)
    assert unbudgeted.amount == 20
    assert unbudgeted.percentage == 0
