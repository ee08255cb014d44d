# controllers/finances.py
"""Income sources and savings goals feeding the allocation check."""

import logging
from typing import List

from fastapi import APIRouter, Depends

from ..dependencies import get_scope, get_stores
from ..schemas import budget as schemas
from ..services.allocation import load_allocation
from ..services.contracts import Stores
from ..services.domain import BudgetScope, IncomeSource, SavingsGoal
from ..services.periods import current_period

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/income/", response_model=IncomeSource, status_code=201, summary="Add an income source")
async def create_income_source(
    source: schemas.IncomeSourceCreate,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    logger.info(f"Adding income source: {source.name} ({source.amount} {source.frequency.value})")
    return await stores.finances.add_income_source(scope, IncomeSource(**source.model_dump()))


@router.get("/income/", response_model=List[IncomeSource], summary="List active income sources")
async def list_income_sources(
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    return await stores.finances.list_active_income_sources(scope)


@router.post(
    "/savings-goals/",
    response_model=schemas.SavingsGoalCreated,
    status_code=201,
    summary="Add a savings goal",
)
async def create_savings_goal(
    goal: schemas.SavingsGoalCreate,
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    """Add a savings goal and report whether its contribution still fits in income."""
    logger.info(f"Adding savings goal: {goal.name} ({goal.monthly_contribution}/month)")

    allocation = await load_allocation(scope, current_period(), stores.budgets, stores.finances)
    check = allocation.validate(savings_delta=goal.monthly_contribution)
    saved = await stores.finances.add_savings_goal(scope, SavingsGoal(**goal.model_dump()))
    return schemas.SavingsGoalCreated(goal=saved, allocation=check)


@router.get("/savings-goals/", response_model=List[SavingsGoal], summary="List active savings goals")
async def list_savings_goals(
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    return await stores.finances.list_active_savings_goals(scope)
