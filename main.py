import logging
from datetime import date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from analytics import AnalyticsService
from budgets import BudgetService, local_now
from database import SessionLocal
from errors import NotFoundError
from periods import naive_local, resolve_period
from schemas import (
    BudgetEvaluation,
    BudgetIn,
    BudgetSummary,
    BudgetUpdateIn,
    CategoryIn,
    CategoryOut,
    DashboardSnapshot,
    ExpenseAnalytics,
    LedgerEntryIn,
    LedgerEntryOut,
    OverlapCheck,
    SpendingTrends,
    UserIn,
    WalletIn,
    WalletOut,
)
from services import (
    CategoryService,
    LedgerService,
    UserService,
    WalletService,
    resolve_category,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="SpendSmart")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(x_user_id: int = Header(default=1)) -> int:
    return x_user_id


def http_error(exc: ValueError) -> HTTPException:
    status = 404 if isinstance(exc, NotFoundError) else 400
    return HTTPException(status_code=status, detail=str(exc))


@app.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


@app.post("/api/v1/users", status_code=201)
def create_user(data: UserIn, db: Session = Depends(get_db)):
    try:
        user = UserService(db).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": user.id, "name": user.name, "email": user.email}


@app.get("/api/v1/categories", response_model=list[CategoryOut])
def list_categories(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    service = CategoryService(db, user_id)
    return [service.to_out(c) for c in service.list_all()]


@app.post("/api/v1/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = CategoryService(db, user_id)
    try:
        return service.to_out(service.create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/wallets", response_model=list[WalletOut])
def list_wallets(db: Session = Depends(get_db), user_id: int = Depends(current_user_id)):
    service = WalletService(db, user_id)
    return [service.to_out(w) for w in service.list_all()]


@app.post("/api/v1/wallets", response_model=WalletOut, status_code=201)
def create_wallet(
    data: WalletIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = WalletService(db, user_id)
    try:
        return service.to_out(service.create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/expenses", response_model=list[LedgerEntryOut])
def list_expenses(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = LedgerService(db, user_id)
    try:
        entries = service.list(start=start, end=end)
    except ValueError as exc:
        raise http_error(exc) from exc
    return [service.to_out(e) for e in entries]


@app.get("/api/v1/expenses/{entry_id}", response_model=LedgerEntryOut)
def get_expense(
    entry_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = LedgerService(db, user_id)
    try:
        return service.to_out(service.get(entry_id))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/v1/expenses", response_model=LedgerEntryOut, status_code=201)
def create_expense(
    data: LedgerEntryIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = LedgerService(db, user_id)
    try:
        return service.to_out(service.create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/v1/expenses/{entry_id}", response_model=LedgerEntryOut)
def update_expense(
    entry_id: int,
    data: LedgerEntryIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = LedgerService(db, user_id)
    try:
        return service.to_out(service.update(entry_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/v1/expenses/{entry_id}", status_code=204)
def delete_expense(
    entry_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        LedgerService(db, user_id).delete(entry_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/v1/budgets", response_model=list[BudgetEvaluation])
def list_budgets(db: Session = Depends(get_db), user_id: int = Depends(current_user_id)):
    service = BudgetService(db, user_id)
    try:
        return service.evaluate_all(service.list_active())
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/budgets/active", response_model=list[BudgetEvaluation])
def list_budgets_in_window(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    service = BudgetService(db, user_id)
    now = local_now()
    try:
        return service.evaluate_all(service.list_active_in_window(now), now=now)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/budgets/summary", response_model=BudgetSummary)
def budget_summary(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    try:
        return BudgetService(db, user_id).summary()
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/budgets/overlap", response_model=OverlapCheck)
def check_budget_overlap(
    starts_at: datetime,
    ends_at: datetime,
    category_id: Optional[int] = None,
    exclude_budget_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    starts_at, ends_at = naive_local(starts_at), naive_local(ends_at)
    try:
        overlaps = BudgetService(db, user_id).has_overlap(
            category_id, starts_at, ends_at, exclude_budget_id
        )
        resolve_category(db, user_id, category_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return OverlapCheck(
        category_id=category_id,
        starts_at=starts_at,
        ends_at=ends_at,
        exclude_budget_id=exclude_budget_id,
        overlaps=overlaps,
    )


@app.get("/api/v1/budgets/{budget_id}", response_model=BudgetEvaluation)
def get_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = BudgetService(db, user_id)
    try:
        return service.evaluate(service.get(budget_id))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/v1/budgets", response_model=BudgetEvaluation, status_code=201)
def create_budget(
    data: BudgetIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = BudgetService(db, user_id)
    try:
        return service.evaluate(service.create(data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/v1/budgets/{budget_id}", response_model=BudgetEvaluation)
def update_budget(
    budget_id: int,
    data: BudgetUpdateIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    service = BudgetService(db, user_id)
    try:
        return service.evaluate(service.update(budget_id, data))
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/v1/budgets/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        BudgetService(db, user_id).soft_delete(budget_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/v1/analytics/expenses", response_model=ExpenseAnalytics)
def expense_analytics(
    start: date,
    end: date,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        return AnalyticsService(db, user_id).expense_analytics(start, end)
    except ValueError as exc:
        raise http_error(exc) from exc


def _analytics_for_period(db: Session, user_id: int, slug: str) -> ExpenseAnalytics:
    period = resolve_period(slug, None, None, today=local_now().date())
    try:
        return AnalyticsService(db, user_id).expense_analytics(period.start, period.end)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/analytics/expenses/current-month", response_model=ExpenseAnalytics)
def current_month_analytics(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return _analytics_for_period(db, user_id, "this_month")


@app.get("/api/v1/analytics/expenses/last-month", response_model=ExpenseAnalytics)
def last_month_analytics(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return _analytics_for_period(db, user_id, "last_month")


@app.get("/api/v1/analytics/trends", response_model=SpendingTrends)
def spending_trends(
    months: int = Query(default=12, ge=1, le=120),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    try:
        return AnalyticsService(db, user_id).spending_trends(months)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/v1/analytics/dashboard", response_model=DashboardSnapshot)
def dashboard(db: Session = Depends(get_db), user_id: int = Depends(current_user_id)):
    try:
        return AnalyticsService(db, user_id).dashboard()
    except ValueError as exc:
        raise http_error(exc) from exc


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
