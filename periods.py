from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional


class PayFrequency(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"

    @classmethod
    def parse(cls, value: "str | PayFrequency") -> "PayFrequency":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f'Frequency must be either "weekly" or "biweekly", got {value!r}'
            ) from None

    @property
    def step(self) -> timedelta:
        return timedelta(days=7 if self is PayFrequency.weekly else 14)


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class PayPeriod:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: date,
) -> Period:
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)

    # this month
    first = today.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    end_this = next_month - date.resolution
    return Period("this_month", first, end_this)


def resolve_current_pay_period(
    last_pay_date: date, frequency: "str | PayFrequency", today: date
) -> PayPeriod:
    """Return the pay period containing ``today``.

    Periods repeat every 7 or 14 days from ``last_pay_date`` in both
    directions, so an anchor stored in the future is walked backwards and a
    stale one forwards. ``last_pay_date == today`` yields the period that
    starts today.
    """
    step = PayFrequency.parse(frequency).step
    period_start = last_pay_date

    while period_start > today:
        period_start -= step

    while True:
        next_date = period_start + step
        if today < next_date:
            break
        period_start = next_date

    return PayPeriod(start=period_start, end=period_start + step - date.resolution)


def next_pay_date(
    last_pay_date: date, frequency: "str | PayFrequency", today: date
) -> date:
    return resolve_current_pay_period(last_pay_date, frequency, today).end + (
        date.resolution
    )


def did_miss_payday(
    last_pay_date: date, frequency: "str | PayFrequency", today: date
) -> bool:
    """True when the anchor is stale by at least one full period."""
    return last_pay_date + PayFrequency.parse(frequency).step <= today


def advance_anchor_to_most_recent_period(
    last_pay_date: date, frequency: "str | PayFrequency", today: date
) -> date:
    step = PayFrequency.parse(frequency).step
    anchor = last_pay_date
    while anchor + step <= today:
        anchor += step
    return anchor


def completed_pay_periods(
    last_pay_date: date, frequency: "str | PayFrequency", today: date, count: int
) -> list[PayPeriod]:
    """The ``count`` full pay periods before the one containing ``today``.

    Oldest first.
    """
    if count < 1:
        raise ValueError("At least one pay period is required")
    step = PayFrequency.parse(frequency).step
    current = resolve_current_pay_period(last_pay_date, frequency, today)
    periods = []
    start = current.start
    for _ in range(count):
        start -= step
        periods.append(PayPeriod(start=start, end=start + step - date.resolution))
    periods.reverse()
    return periods
