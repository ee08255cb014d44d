# controllers/budgets.py
"""Budget endpoints: create, change and delete budgets, usage snapshots and impact previews."""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from ..auth import get_current_user
from ..dependencies import get_period, get_scope, get_stores
from ..errors import DuplicateBudgetError
from ..schemas import budget as schemas
from ..services.allocation import load_allocation
from ..services.contracts import Stores
from ..services.domain import Budget, BudgetScope, ExpenseRecord
from ..services.impact import BudgetImpact, preview_impact
from ..services.periods import BudgetPeriod, to_local_time
from ..services.usage import BudgetUsageSnapshot, calculate_usage, sort_by_status, summarize_usage

logger = logging.getLogger(__name__)

router = APIRouter()


async def budget_in_scope(stores: Stores, scope: BudgetScope, budget_id: str) -> Budget:
    budget = await stores.budgets.get_budget_by_id(budget_id)
    if not budget or budget.scope != scope:
        raise HTTPException(status_code=404, detail="Budget not found")
    return budget


def usage_for(budget: Budget, expenses: List[ExpenseRecord]) -> BudgetUsageSnapshot:
    """Snapshot of ``budget``; ``expenses`` also feeds the previous-month comparison."""
    return calculate_usage(
        budget.category,
        budget.monthly_limit,
        expenses,
        budget.period,
        previous_expenses=expenses,
        budget_id=budget.id,
    )


@router.post("/", response_model=schemas.BudgetCreated, status_code=201, summary="Create a budget")
async def create_budget(
    budget_data: schemas.BudgetCreate,
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    current_user: str = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    """Create a category budget and report whether it still fits in income.

    Month and year in the body win over the query string. Over-allocation is
    returned as a warning; the budget is created either way.
    """
    period = BudgetPeriod(
        month=budget_data.month or period.month,
        year=budget_data.year or period.year,
    )
    budget = Budget.new(
        scope, budget_data.category, budget_data.monthly_limit, period, created_by=current_user
    )
    logger.info(f"Creating {budget.category} budget of {budget.monthly_limit} for {period}")

    if await stores.budgets.get_budget(scope, budget.category, period):
        raise HTTPException(
            status_code=409,
            detail="A budget for this category and period already exists",
        )

    allocation = await load_allocation(scope, period, stores.budgets, stores.finances)
    check = allocation.validate(budget_delta=budget.monthly_limit)
    if not check.is_valid:
        logger.warning(f"Budget {budget.id} over-allocates income by {check.over_allocation}")

    try:
        created = await stores.budgets.create_budget(budget)
    except DuplicateBudgetError:
        # lost a race with a concurrent create of the same budget
        raise HTTPException(
            status_code=409,
            detail="A budget for this category and period already exists",
        )
    return schemas.BudgetCreated(budget=created, allocation=check)


@router.get("/", response_model=List[Budget], summary="List budgets")
async def list_budgets(
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    logger.debug(f"Listing budgets for {scope.kind}:{scope.id} in {period}")
    return await stores.budgets.list_budgets(scope, period)


@router.get("/usage", response_model=schemas.UsageReport, summary="Usage of every budget")
async def budget_usage(
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    """Usage snapshots for all budgets of the period, most urgent first."""
    budgets = await stores.budgets.list_budgets(scope, period)
    expenses = await stores.expenses.list_expenses(scope) if budgets else []
    usage = sort_by_status(usage_for(budget, expenses) for budget in budgets)
    return schemas.UsageReport(period=period, usage=usage, summary=summarize_usage(usage))


@router.put("/{budget_id}", response_model=schemas.BudgetUpdated, summary="Change a budget limit")
async def update_budget(
    budget_id: str,
    budget_data: schemas.BudgetUpdate,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    """Change the monthly limit and report whether income still covers it.

    Only the difference to the old limit counts against income. As on
    creation, over-allocation is a warning and the change is saved anyway.
    """
    budget = await budget_in_scope(stores, scope, budget_id)
    changed = budget.with_limit(budget_data.monthly_limit)

    allocation = await load_allocation(scope, budget.period, stores.budgets, stores.finances)
    check = allocation.validate(budget_delta=changed.monthly_limit - budget.monthly_limit)
    if not check.is_valid:
        logger.warning(f"Budget {budget.id} over-allocates income by {check.over_allocation}")

    logger.info(f"Changing {budget.id} limit from {budget.monthly_limit} to {changed.monthly_limit}")
    updated = await stores.budgets.update_budget(budget.id, changed.monthly_limit)
    if updated is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return schemas.BudgetUpdated(budget=updated, allocation=check)


@router.delete("/{budget_id}", status_code=204, summary="Delete a budget")
async def delete_budget(
    budget_id: str,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    budget = await budget_in_scope(stores, scope, budget_id)
    logger.info(f"Deleting budget {budget.id}")
    if not await stores.budgets.delete_budget(budget.id):
        raise HTTPException(status_code=404, detail="Budget not found")
    return Response(status_code=204)


@router.get("/{budget_id}/usage", response_model=BudgetUsageSnapshot, summary="Usage of one budget")
async def single_budget_usage(
    budget_id: str,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    budget = await budget_in_scope(stores, scope, budget_id)
    expenses = await stores.expenses.list_expenses(scope)
    return usage_for(budget, expenses)


@router.post("/impact", response_model=BudgetImpact, summary="Preview a new expense")
async def budget_impact(
    request: schemas.ImpactRequest,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    """What the category budget would look like if this expense were saved."""
    period = BudgetPeriod.of(to_local_time(request.date or datetime.now()))
    budget = await stores.budgets.get_budget(scope, request.category, period)
    if not budget:
        raise HTTPException(status_code=404, detail="No budget for this category and period")

    expenses = await stores.expenses.list_expenses(scope)
    return preview_impact(usage_for(budget, expenses), request.amount)
