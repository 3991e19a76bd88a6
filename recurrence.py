from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from budgeting import days_in_month
from config import get_settings
from periods import PayPeriod


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def due_date_in_month(due_day: int, year: int, month: int) -> date:
    """Bills due on the 29th-31st fall on the last day of shorter months."""
    if not 1 <= due_day <= 31:
        raise ValueError(f"Due day must be between 1 and 31, got {due_day}")
    return date(year, month, min(due_day, days_in_month(year, month)))


def _following_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def due_date_in_period(due_day: int, period: PayPeriod) -> Optional[date]:
    year, month = period.start.year, period.start.month
    # a 14-day period touches at most two calendar months
    for _ in range(2):
        candidate = due_date_in_month(due_day, year, month)
        if period.contains(candidate):
            return candidate
        year, month = _following_month(year, month)
    return None


@dataclass(frozen=True)
class BillDue:
    bill_id: int
    due_date: date
    days_until_due: int


def bills_due_in_period(
    bills: list[tuple[int, int]], period: PayPeriod, today: date
) -> list[BillDue]:
    """Place ``(bill_id, due_day)`` pairs on their due date inside ``period``.

    Bills whose due day does not land in the period are dropped. The result
    is ordered by days until due, soonest first, with overdue bills at 0.
    """
    due: list[BillDue] = []
    for bill_id, due_day in bills:
        due_date = due_date_in_period(due_day, period)
        if due_date is None:
            continue
        due.append(
            BillDue(
                bill_id=bill_id,
                due_date=due_date,
                days_until_due=max(0, (due_date - today).days),
            )
        )
    due.sort(key=lambda item: (item.days_until_due, item.due_date, item.bill_id))
    return due
