# controllers/allocation.py
"""Income allocation endpoints."""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_period, get_scope, get_stores
from ..schemas import budget as schemas
from ..services.allocation import AllocationCheck, AllocationState, load_allocation
from ..services.contracts import Stores
from ..services.domain import BudgetScope
from ..services.periods import BudgetPeriod

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=AllocationState, summary="Current income allocation")
async def get_allocation(
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    return await load_allocation(scope, period, stores.budgets, stores.finances)


@router.post("/validate", response_model=AllocationCheck, summary="Check a planned change")
async def validate_allocation(
    request: schemas.AllocationRequest,
    period: BudgetPeriod = Depends(get_period),
    scope: BudgetScope = Depends(get_scope),
    stores: Stores = Depends(get_stores),
):
    """Would adding these budget/savings amounts exceed income? Nothing is saved."""
    state = await load_allocation(scope, period, stores.budgets, stores.finances)
    return state.validate(request.budget_delta, request.savings_delta)
