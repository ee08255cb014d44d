# controllers/expenses.py
"""Expense endpoints. Saving an expense re-checks the budget thresholds."""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends

from ..auth import get_current_user
from ..dependencies import get_period, get_scope, get_stores
from ..schemas import budget as schemas
from ..services.contracts import Stores
from ..services.domain import BudgetScope, ExpenseRecord
from ..services.monitoring import check_budget_after_expense
from ..services.periods import BudgetPeriod, is_in_period

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=schemas.ExpenseCreated, status_code=201, summary="Record an expense")
async def create_expense(
    expense: schemas.ExpenseCreate,
    scope: BudgetScope = Depends(get_scope),
    current_user: str = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    """Record a new expense, then fire any budget alerts it makes due.

    Alerting problems are logged and never fail the request.
    """
    logger.info(f"Creating expense: {expense.category} (${expense.amount})")

    record = ExpenseRecord(
        category=expense.category,
        amount=expense.amount,
        date=expense.date or datetime.now(),
        description=expense.description,
    )
    saved = await stores.expenses.add_expense(scope, record, created_by=current_user)

    check = await check_budget_after_expense(
        stores, scope, saved.category, BudgetPeriod.of(saved.date)
    )
    fired = check.fired if check else []
    return schemas.ExpenseCreated(expense=saved, fired_alerts=fired)


@router.get("/", response_model=List[ExpenseRecord], summary="List expenses of a period")
async def list_expenses(
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    logger.debug(f"Fetching expenses for {period}")
    expenses = await stores.expenses.list_expenses(scope)
    return [e for e in expenses if is_in_period(e.date, period)]
