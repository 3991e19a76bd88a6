from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from schemas import BudgetCategoryIn, PaySettingsIn, TransactionIn
from services import (
    BudgetCategoryService,
    OverspendingService,
    PaySettingsService,
    TransactionService,
)

TODAY = date(2024, 2, 1)


def _seed(session: Session) -> dict[str, int]:
    PaySettingsService(session).save(
        PaySettingsIn(last_pay_date=date(2024, 1, 5), frequency="biweekly")
    )
    categories = BudgetCategoryService(session)
    groceries = categories.create(
        BudgetCategoryIn(name="Groceries", allocated_amount=Decimal("600"))
    )
    dining = categories.create(
        BudgetCategoryIn(name="Dining", allocated_amount=Decimal("300"))
    )
    vacation = categories.create(
        BudgetCategoryIn(name="Vacation", is_budget_category=False)
    )

    transactions = TransactionService(session)
    for day, name, amount, category in (
        (date(2023, 12, 23), "Anniversary dinner", "200", dining),
        (date(2024, 1, 6), "Stock up", "300", groceries),
        (date(2024, 1, 8), "Flights", "900", vacation),
        (date(2024, 1, 10), "Market", "50", groceries),
        (date(2024, 1, 12), "Takeout", "100", dining),
        (date(2024, 1, 20), "Current period", "999", groceries),
    ):
        transactions.create(
            TransactionIn(
                date=day, name=name, amount=Decimal(amount), category_id=category.id
            )
        )
    return {"groceries": groceries.id, "dining": dining.id}


def test_overspending_over_completed_pay_periods() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ids = _seed(session)

        result = OverspendingService(session).analyze(2, today=TODAY)

        assert result.pay_frequency == "biweekly"
        first, second = result.periods
        assert (first.start_date, first.end_date) == (
            date(2023, 12, 22),
            date(2024, 1, 4),
        )
        assert first.total_budget == 420
        assert first.total_spent == 200
        assert first.overspent == 0
        assert [row.id for row in first.categories] == [ids["dining"]]
        assert first.categories[0].overspent == 60
        assert first.categories[0].overspent_percentage == pytest.approx(42.86)

        assert (second.start_date, second.end_date) == (
            date(2024, 1, 5),
            date(2024, 1, 18),
        )
        assert second.total_spent == 450
        assert second.overspent == 30
        groceries = second.categories[0]
        assert groceries.id == ids["groceries"]
        assert groceries.budget_amount == 280
        assert groceries.spent == 350
        assert groceries.overspent_percentage == 25
        assert [txn.name for txn in groceries.transactions] == ["Stock up", "Market"]
        assert [txn.amount for txn in second.biggest_transactions] == [
            900,
            300,
            100,
            50,
        ]

        summary = result.summary
        assert summary.periods_analyzed == 2
        assert summary.total_overspent == 30
        assert summary.average_overspent == 15
        assert [row.id for row in summary.problematic_categories] == [
            ids["groceries"],
            ids["dining"],
        ]
        assert summary.problematic_categories[0].occurrences == 1


def test_overspending_requires_pay_settings_and_sane_period_count() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = OverspendingService(session)
        with pytest.raises(ValueError, match="not configured"):
            service.analyze(today=TODAY)

        _seed(session)
        with pytest.raises(ValueError, match="between"):
            service.analyze(0, today=TODAY)
        assert len(service.analyze(today=TODAY).periods) == 6
