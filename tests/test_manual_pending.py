from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from schemas import BudgetCategoryIn, ManualPendingIn
from services import BudgetCategoryService, ManualPendingService

PERIOD = (date(2024, 1, 19), date(2024, 2, 1))


def _item(name: str, amount: str, **overrides) -> ManualPendingIn:
    fields = {
        "name": name,
        "amount": Decimal(amount),
        "due_date": date(2024, 1, 25),
        "pay_period_start": PERIOD[0],
        "pay_period_end": PERIOD[1],
    }
    fields.update(overrides)
    return ManualPendingIn(**fields)


def test_items_are_listed_per_pay_period_with_totals() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        category = BudgetCategoryService(session).create(
            BudgetCategoryIn(name="Home", allocated_amount=Decimal("200"))
        )
        service = ManualPendingService(session)
        service.create(_item("Plumber", "180", category_id=category.id))
        service.create(
            _item("Gift", "40.50", due_date=date(2024, 1, 20), is_completed=True)
        )
        service.create(
            _item(
                "Next period",
                "99",
                due_date=date(2024, 2, 5),
                pay_period_start=date(2024, 2, 2),
                pay_period_end=date(2024, 2, 15),
            )
        )

        items = service.list_all(*PERIOD)
        assert [item.name for item in items] == ["Gift", "Plumber"]
        assert items[1].category.name == "Home"

        total, pending = service.totals(items)
        assert total == Decimal("220.50")
        assert pending == Decimal("180")

        assert len(service.list_all()) == 3


def test_completion_update_and_delete() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = ManualPendingService(session)
        item = service.create(_item("Plumber", "180"))

        assert service.set_completed(item.id, True).is_completed is True
        updated = service.update(item.id, _item("Plumber", "210.25"))
        assert updated.amount_cents == 21025
        assert updated.is_completed is False

        service.delete(item.id)
        with pytest.raises(ValueError, match="not found"):
            service.get(item.id)


def test_invalid_items_are_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = ManualPendingService(session)
        with pytest.raises(ValueError, match="before its start"):
            service.create(
                _item(
                    "Backwards",
                    "10",
                    pay_period_start=date(2024, 2, 1),
                    pay_period_end=date(2024, 1, 19),
                )
            )
        with pytest.raises(ValueError, match="Category not found"):
            service.create(_item("Orphan", "10", category_id=42))
