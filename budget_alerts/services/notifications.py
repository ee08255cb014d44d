# services/notifications.py
"""Notification intents: what should be sent, never how it is rendered."""

from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class GroupContext(BaseModel):
    group_id: str
    group_name: Optional[str] = None
    member_ids: List[str] = []


class _BudgetIntent(BaseModel, frozen=True):
    budget_id: str
    category: str
    percentage: int
    current: Decimal
    limit: Decimal
    group_id: Optional[str] = None
    group_name: Optional[str] = None


class WarningIntent(_BudgetIntent, frozen=True):
    type: Literal["warning"] = "warning"


class CriticalIntent(_BudgetIntent, frozen=True):
    type: Literal["critical"] = "critical"


class ExceededIntent(_BudgetIntent, frozen=True):
    type: Literal["exceeded"] = "exceeded"
    overage: Decimal


NotificationIntent = Annotated[
    Union[WarningIntent, CriticalIntent, ExceededIntent],
    Field(discriminator="type"),
]
