import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaySettingsIn(CamelModel):
    last_pay_date: dt.date
    # validated by PayFrequency.parse so a bad value is a 400, not a 422
    frequency: str


class PaySettingsOut(CamelModel):
    id: int
    last_pay_date: dt.date
    frequency: str


class PayPeriodOut(CamelModel):
    start_date: dt.date
    end_date: dt.date
    frequency: str
    last_pay_date: dt.date
    next_pay_date: dt.date
    days_in_period: int
    days_until_payday: int
    missed_payday: bool
    suggested_last_pay_date: dt.date
    is_default_settings: bool


class BudgetCategoryIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    allocated_amount: Decimal = Field(default=Decimal("0"), ge=0, allow_inf_nan=False)
    color: str = Field(default="#3B82F6", max_length=9)
    is_active: bool = True
    is_budget_category: bool = True


class BudgetCategoryOut(CamelModel):
    id: int
    name: str
    allocated_amount: float
    color: str
    is_active: bool
    is_budget_category: bool


class TransactionIn(CamelModel):
    date: dt.date
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., allow_inf_nan=False)
    category_id: Optional[int] = None
    cash_back: Decimal = Field(default=Decimal("0"), ge=0, allow_inf_nan=False)
    cashback_posted: bool = True
    notes: Optional[str] = None
    pending: bool = False
    pending_tip_amount: Decimal = Field(
        default=Decimal("0"), ge=0, allow_inf_nan=False
    )
    credit_card_pending: bool = False
    sort_order: int = 0


class TransactionOut(CamelModel):
    id: int
    date: dt.date
    name: str
    amount: float
    category_id: Optional[int]
    category_name: Optional[str]
    cash_back: float
    cashback_posted: bool
    notes: Optional[str]
    pending: bool
    pending_tip_amount: float
    credit_card_pending: bool
    sort_order: int


class RecurringBillIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    due_day: int = Field(..., ge=1, le=31)
    is_essential: bool = False
    notes: Optional[str] = None


class RecurringBillOut(CamelModel):
    id: int
    name: str
    amount: float
    due_day: int
    is_essential: bool
    notes: Optional[str]


class PendingBillOut(CamelModel):
    id: int
    name: str
    amount: float
    base_amount: float
    is_overridden: bool
    due_date: dt.date
    days_until_due: int
    pay_period_start: dt.date
    pay_period_end: dt.date
    is_completed: bool
    is_essential: bool


class PendingAmountIn(CamelModel):
    amount: Decimal = Field(..., ge=0, allow_inf_nan=False)


class CategoryAnalysisOut(CamelModel):
    id: int
    name: str
    color: str
    allocated_amount: float
    full_month_amount: float
    raw_spent: float
    spent: float
    adjusted_spent: float
    remaining: float
    cash_back: float
    pending_tip_amount: float
    pending_cashback_amount: float
    credit_card_pending_amount: float
    days_in_period: int


class TrackingCategoryOut(CamelModel):
    id: int
    name: str
    color: str
    spent: float
    adjusted_spent: float


class BudgetSummaryOut(CamelModel):
    total_allocated: float
    total_monthly_allocated: float
    total_raw_spent: float
    total_cash_back: float
    total_spent: float
    total_adjusted_spent: float
    total_remaining: float
    total_pending_tip_amount: float
    total_pending_cashback_amount: float
    total_credit_card_pending_amount: float
    big_purchase_spent: float
    daily_budget_remaining: float
    start_date: dt.date
    end_date: dt.date
    days_in_period: int
    period_type: str


class BudgetAnalysisOut(CamelModel):
    categories: list[CategoryAnalysisOut]
    tracking_categories: list[TrackingCategoryOut]
    summary: BudgetSummaryOut


class ManualPendingIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    due_date: dt.date
    category_id: Optional[int] = None
    notes: Optional[str] = None
    pay_period_start: dt.date
    pay_period_end: dt.date
    is_completed: bool = False


class ManualPendingOut(CamelModel):
    id: int
    name: str
    amount: float
    due_date: dt.date
    category_id: Optional[int]
    category_name: Optional[str]
    notes: Optional[str]
    pay_period_start: dt.date
    pay_period_end: dt.date
    is_completed: bool


class ManualPendingListOut(CamelModel):
    transactions: list[ManualPendingOut]
    total_amount: float
    pending_amount: float
    count: int


class CompletionIn(CamelModel):
    is_completed: bool


class OverspendTransactionOut(CamelModel):
    id: int
    date: dt.date
    name: str
    amount: float
    category_id: Optional[int]


class CategoryOverspendOut(CamelModel):
    id: int
    name: str
    color: str
    budget_amount: float
    spent: float
    overspent: float
    overspent_percentage: float
    transactions: list[OverspendTransactionOut]


class OverspendPeriodOut(CamelModel):
    start_date: dt.date
    end_date: dt.date
    total_budget: float
    total_spent: float
    overspent: float
    categories: list[CategoryOverspendOut]
    biggest_transactions: list[OverspendTransactionOut]


class ProblemCategoryOut(CamelModel):
    id: int
    name: str
    color: str
    total_overspent: float
    occurrences: int
    average_overspent: float


class OverspendSummaryOut(CamelModel):
    total_overspent: float
    average_overspent: float
    periods_analyzed: int
    problematic_categories: list[ProblemCategoryOut]


class OverspendingAnalysisOut(CamelModel):
    periods: list[OverspendPeriodOut]
    summary: OverspendSummaryOut
    pay_frequency: str
