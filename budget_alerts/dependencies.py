# dependencies.py
"""Centralized dependencies for FastAPI application."""

from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import get_current_user
from .database import get_sessionmaker
from .services.contracts import Stores
from .services.domain import BudgetScope
from .services.periods import BudgetPeriod, current_period
from .stores.sql import sql_stores


async def get_db() -> AsyncIterator[AsyncSession]:
    """Database session dependency.

    Yields a database session and ensures it's closed after use.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with get_sessionmaker()() as db:
        yield db


def get_stores(db: AsyncSession = Depends(get_db)) -> Stores:
    """Every engine collaborator, backed by the request's session.

    Tests swap this out through ``app.dependency_overrides``.
    """
    return sql_stores(db)


async def get_scope(
    x_group_id: Optional[str] = Header(None),
    current_user: str = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
) -> BudgetScope:
    """
    Resolves whose budgets the request is about.
    Without an X-Group-ID header that is the caller; with one, the group,
    provided the caller is a member of it.
    """
    if not x_group_id:
        return BudgetScope.personal(current_user)

    if not await stores.groups.is_member(x_group_id, current_user):
        raise HTTPException(status_code=403, detail="Access to this group denied")

    return BudgetScope.group(x_group_id)


def get_period(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1),
) -> BudgetPeriod:
    """Period from ?month=&year=, each defaulting to the current one."""
    current = current_period()
    return BudgetPeriod(month=month or current.month, year=year or current.year)
