import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from sqlalchemy.orm import Session

from budgeting import cents_to_amount
from config import get_settings
from csrf import generate_csrf_token, require_csrf
from database import SessionLocal, session_scope
from models import (
    BudgetCategory,
    ManualPendingTransaction,
    PaySettings,
    RecurringBill,
    Transaction,
)
from periods import did_miss_payday, resolve_period
from recurrence import local_today
from schemas import (
    BudgetAnalysisOut,
    BudgetCategoryIn,
    BudgetCategoryOut,
    CompletionIn,
    ManualPendingIn,
    ManualPendingListOut,
    ManualPendingOut,
    OverspendingAnalysisOut,
    PayPeriodOut,
    PaySettingsIn,
    PaySettingsOut,
    PendingAmountIn,
    PendingBillOut,
    RecurringBillIn,
    RecurringBillOut,
    TransactionIn,
    TransactionOut,
)
from services import (
    BudgetAnalysisService,
    BudgetCategoryService,
    DEFAULT_OVERSPEND_PERIODS,
    ManualPendingService,
    OverspendingService,
    PaySettingsService,
    RecurringBillService,
    TransactionService,
    to_money,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pay-Period Budget")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_today() -> date:
    return local_today()


@app.on_event("startup")
def startup_event():
    with session_scope() as session:
        settings = PaySettingsService(session).get()
        if settings is None:
            logger.info("pay_settings: not configured, biweekly default in use")
            return
        today = local_today()
        if did_miss_payday(settings.last_pay_date, settings.frequency, today):
            logger.warning(
                "pay_settings: last_pay_date=%s is at least one %s period old",
                settings.last_pay_date.isoformat(),
                settings.frequency.value,
            )


def client_error(exc: ValueError) -> HTTPException:
    message = str(exc)
    status = 404 if message.endswith("not found") else 400
    return HTTPException(status_code=status, detail=message)


def settings_out(settings: PaySettings) -> PaySettingsOut:
    return PaySettingsOut(
        id=settings.id,
        last_pay_date=settings.last_pay_date,
        frequency=settings.frequency.value,
    )


def category_out(category: BudgetCategory) -> BudgetCategoryOut:
    return BudgetCategoryOut(
        id=category.id,
        name=category.name,
        allocated_amount=to_money(cents_to_amount(category.allocated_cents)),
        color=category.color,
        is_active=category.is_active,
        is_budget_category=category.is_budget_category,
    )


def transaction_out(txn: Transaction) -> TransactionOut:
    return TransactionOut(
        id=txn.id,
        date=txn.date,
        name=txn.name,
        amount=to_money(cents_to_amount(txn.amount_cents)),
        category_id=txn.category_id,
        category_name=txn.category.name if txn.category else None,
        cash_back=to_money(cents_to_amount(txn.cash_back_cents)),
        cashback_posted=txn.cashback_posted,
        notes=txn.notes,
        pending=txn.pending,
        pending_tip_amount=to_money(cents_to_amount(txn.pending_tip_cents)),
        credit_card_pending=txn.credit_card_pending,
        sort_order=txn.sort_order,
    )


def bill_out(bill: RecurringBill) -> RecurringBillOut:
    return RecurringBillOut(
        id=bill.id,
        name=bill.name,
        amount=to_money(cents_to_amount(bill.amount_cents)),
        due_day=bill.due_day,
        is_essential=bill.is_essential,
        notes=bill.notes,
    )


def manual_pending_out(item: ManualPendingTransaction) -> ManualPendingOut:
    return ManualPendingOut(
        id=item.id,
        name=item.name,
        amount=to_money(cents_to_amount(item.amount_cents)),
        due_date=item.due_date,
        category_id=item.category_id,
        category_name=item.category.name if item.category else None,
        notes=item.notes,
        pay_period_start=item.pay_period_start,
        pay_period_end=item.pay_period_end,
        is_completed=item.is_completed,
    )


@app.get("/api/csrf-token")
def api_csrf_token():
    return {"token": generate_csrf_token()}


@app.get("/api/pay-settings")
def api_get_pay_settings(db: Session = Depends(get_db)):
    settings = PaySettingsService(db).get()
    if settings is None:
        return {}
    return settings_out(settings)


@app.post(
    "/api/pay-settings",
    response_model=PaySettingsOut,
    dependencies=[Depends(require_csrf)],
)
def api_save_pay_settings(data: PaySettingsIn, db: Session = Depends(get_db)):
    try:
        settings = PaySettingsService(db).save(data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return settings_out(settings)


@app.post(
    "/api/pay-settings/advance",
    response_model=PaySettingsOut,
    dependencies=[Depends(require_csrf)],
)
def api_advance_pay_settings(
    db: Session = Depends(get_db), today: date = Depends(get_today)
):
    try:
        settings = PaySettingsService(db).advance_anchor(today)
    except ValueError as exc:
        raise client_error(exc) from exc
    return settings_out(settings)


@app.get("/api/pay-period", response_model=PayPeriodOut)
def api_pay_period(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return PaySettingsService(db).pay_period_overview(today)


@app.get("/api/budget-analysis", response_model=BudgetAnalysisOut)
def api_budget_analysis(
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    params = request.query_params
    try:
        return BudgetAnalysisService(db).analyze(
            params.get("periodType") or "month",
            params.get("startDate"),
            params.get("endDate"),
            today=today,
        )
    except ValueError as exc:
        raise client_error(exc) from exc
    except Exception as exc:
        logger.exception("Error building budget analysis")
        raise HTTPException(
            status_code=500, detail="Failed to fetch budget analysis"
        ) from exc


@app.get("/api/budget-categories", response_model=list[BudgetCategoryOut])
def api_list_categories(request: Request, db: Session = Depends(get_db)):
    include_inactive = request.query_params.get("includeInactive") == "true"
    categories = BudgetCategoryService(db).list_all(include_inactive=include_inactive)
    return [category_out(category) for category in categories]


@app.post(
    "/api/budget-categories",
    response_model=BudgetCategoryOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def api_create_category(data: BudgetCategoryIn, db: Session = Depends(get_db)):
    try:
        category = BudgetCategoryService(db).create(data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return category_out(category)


@app.put(
    "/api/budget-categories/{category_id}",
    response_model=BudgetCategoryOut,
    dependencies=[Depends(require_csrf)],
)
def api_update_category(
    category_id: int, data: BudgetCategoryIn, db: Session = Depends(get_db)
):
    try:
        category = BudgetCategoryService(db).update(category_id, data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return category_out(category)


@app.delete(
    "/api/budget-categories/{category_id}", dependencies=[Depends(require_csrf)]
)
def api_delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        BudgetCategoryService(db).delete(category_id)
    except ValueError as exc:
        raise client_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/transactions", response_model=list[TransactionOut])
def api_list_transactions(
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    params = request.query_params
    start: Optional[str] = params.get("startDate")
    end: Optional[str] = params.get("endDate")
    category_param = params.get("categoryId")
    try:
        period = resolve_period(
            "custom" if start or end else None, start, end, today=today
        )
        category_id = int(category_param) if category_param else None
        items = TransactionService(db).list_in_range(
            period.start, period.end, category_id=category_id
        )
    except ValueError as exc:
        raise client_error(exc) from exc
    return [transaction_out(txn) for txn in items]


@app.post(
    "/api/transactions",
    response_model=TransactionOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).create(data)
    except ValueError as exc:
        raise client_error(exc) from exc
    logger.info("transaction_created: id=%s date=%s", txn.id, txn.date.isoformat())
    return transaction_out(txn)


@app.put(
    "/api/transactions/{transaction_id}",
    response_model=TransactionOut,
    dependencies=[Depends(require_csrf)],
)
def api_update_transaction(
    transaction_id: int, data: TransactionIn, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db).update(transaction_id, data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return transaction_out(txn)


@app.delete("/api/transactions/{transaction_id}", dependencies=[Depends(require_csrf)])
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise client_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/recurring-bills", response_model=list[RecurringBillOut])
def api_list_bills(db: Session = Depends(get_db)):
    return [bill_out(bill) for bill in RecurringBillService(db).list_all()]


@app.post(
    "/api/recurring-bills",
    response_model=RecurringBillOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def api_create_bill(data: RecurringBillIn, db: Session = Depends(get_db)):
    try:
        bill = RecurringBillService(db).create(data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return bill_out(bill)


@app.delete("/api/recurring-bills/{bill_id}", dependencies=[Depends(require_csrf)])
def api_delete_bill(bill_id: int, db: Session = Depends(get_db)):
    try:
        RecurringBillService(db).delete(bill_id)
    except ValueError as exc:
        raise client_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/pending-bills", response_model=list[PendingBillOut])
def api_pending_bills(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return RecurringBillService(db).pending_for_current_period(today)


@app.post(
    "/api/pending-bills/{bill_id}/complete", dependencies=[Depends(require_csrf)]
)
def api_complete_bill(
    bill_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)
):
    try:
        completion = RecurringBillService(db).mark_completed(bill_id, today)
    except ValueError as exc:
        raise client_error(exc) from exc
    return {
        "id": completion.id,
        "billId": completion.bill_id,
        "completedDate": completion.completed_date.isoformat(),
        "payPeriodStart": completion.pay_period_start.isoformat(),
        "payPeriodEnd": completion.pay_period_end.isoformat(),
    }


@app.delete(
    "/api/pending-bills/{bill_id}/complete", dependencies=[Depends(require_csrf)]
)
def api_uncomplete_bill(
    bill_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)
):
    try:
        RecurringBillService(db).unmark_completed(bill_id, today)
    except ValueError as exc:
        raise client_error(exc) from exc
    return Response(status_code=204)


@app.put("/api/pending-bills/{bill_id}/amount", dependencies=[Depends(require_csrf)])
def api_override_bill_amount(
    bill_id: int,
    data: PendingAmountIn,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        override = RecurringBillService(db).override_amount(
            bill_id, data.amount, today
        )
    except ValueError as exc:
        raise client_error(exc) from exc
    return {
        "billId": override.bill_id,
        "amount": to_money(cents_to_amount(override.amount_cents)),
        "payPeriodStart": override.pay_period_start.isoformat(),
        "payPeriodEnd": override.pay_period_end.isoformat(),
    }


@app.get("/api/manual-pending-transactions", response_model=ManualPendingListOut)
def api_list_manual_pending(request: Request, db: Session = Depends(get_db)):
    params = request.query_params
    try:
        start = params.get("payPeriodStart")
        end = params.get("payPeriodEnd")
        service = ManualPendingService(db)
        items = service.list_all(
            date.fromisoformat(start) if start else None,
            date.fromisoformat(end) if end else None,
        )
    except ValueError as exc:
        raise client_error(exc) from exc
    total, pending = service.totals(items)
    return ManualPendingListOut(
        transactions=[manual_pending_out(item) for item in items],
        total_amount=to_money(total),
        pending_amount=to_money(pending),
        count=len(items),
    )


@app.post(
    "/api/manual-pending-transactions",
    response_model=ManualPendingOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def api_create_manual_pending(data: ManualPendingIn, db: Session = Depends(get_db)):
    try:
        item = ManualPendingService(db).create(data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return manual_pending_out(item)


@app.put(
    "/api/manual-pending-transactions/{item_id}",
    response_model=ManualPendingOut,
    dependencies=[Depends(require_csrf)],
)
def api_update_manual_pending(
    item_id: int, data: ManualPendingIn, db: Session = Depends(get_db)
):
    try:
        item = ManualPendingService(db).update(item_id, data)
    except ValueError as exc:
        raise client_error(exc) from exc
    return manual_pending_out(item)


@app.put(
    "/api/manual-pending-transactions/{item_id}/completed",
    response_model=ManualPendingOut,
    dependencies=[Depends(require_csrf)],
)
def api_complete_manual_pending(
    item_id: int, data: CompletionIn, db: Session = Depends(get_db)
):
    try:
        item = ManualPendingService(db).set_completed(item_id, data.is_completed)
    except ValueError as exc:
        raise client_error(exc) from exc
    return manual_pending_out(item)


@app.delete(
    "/api/manual-pending-transactions/{item_id}", dependencies=[Depends(require_csrf)]
)
def api_delete_manual_pending(item_id: int, db: Session = Depends(get_db)):
    try:
        ManualPendingService(db).delete(item_id)
    except ValueError as exc:
        raise client_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/overspending-analysis", response_model=OverspendingAnalysisOut)
def api_overspending_analysis(
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    periods_param = request.query_params.get("periods")
    try:
        periods = int(periods_param) if periods_param else DEFAULT_OVERSPEND_PERIODS
        return OverspendingService(db).analyze(periods, today=today)
    except ValueError as exc:
        raise client_error(exc) from exc
