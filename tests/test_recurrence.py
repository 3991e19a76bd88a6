from datetime import date

import pytest

from periods import PayPeriod
from recurrence import bills_due_in_period, due_date_in_month, due_date_in_period


def test_due_day_snaps_to_short_month_end() -> None:
    assert due_date_in_month(31, 2024, 2) == date(2024, 2, 29)
    assert due_date_in_month(31, 2023, 2) == date(2023, 2, 28)
    assert due_date_in_month(31, 2024, 4) == date(2024, 4, 30)
    assert due_date_in_month(15, 2024, 4) == date(2024, 4, 15)


def test_due_day_out_of_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        due_date_in_month(0, 2024, 1)
    with pytest.raises(ValueError):
        due_date_in_month(32, 2024, 1)


def test_due_date_in_period_crossing_month_boundary() -> None:
    period = PayPeriod(start=date(2024, 1, 19), end=date(2024, 2, 1))
    assert due_date_in_period(25, period) == date(2024, 1, 25)
    assert due_date_in_period(1, period) == date(2024, 2, 1)
    assert due_date_in_period(15, period) is None


def test_due_date_in_period_crossing_year_boundary() -> None:
    period = PayPeriod(start=date(2024, 12, 27), end=date(2025, 1, 9))
    assert due_date_in_period(3, period) == date(2025, 1, 3)
    assert due_date_in_period(31, period) == date(2024, 12, 31)


def test_bills_ordered_by_days_until_due() -> None:
    period = PayPeriod(start=date(2024, 1, 19), end=date(2024, 2, 1))
    due = bills_due_in_period(
        [(1, 1), (2, 31), (3, 15), (4, 25), (5, 20)], period, date(2024, 1, 22)
    )

    assert [item.bill_id for item in due] == [5, 4, 2, 1]
    assert [item.days_until_due for item in due] == [0, 3, 9, 10]
    assert due[0].due_date == date(2024, 1, 20)
