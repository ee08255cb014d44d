# services/notifier.py
"""Threshold checks that decide which budget alerts are newly due.

Delivery is at-most-once: due levels are claimed on the tracker with a
conditional update before anything is emitted, and a failed emission does
not release the claim. Nothing in here raises to the caller; the check runs
right after an expense is saved and must never undo that save.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from pydantic import BaseModel

from ..errors import NotificationError
from .contracts import NotificationSink, TrackerStore
from .notifications import (
    CriticalIntent,
    ExceededIntent,
    GroupContext,
    NotificationIntent,
    WarningIntent,
)
from .periods import BudgetPeriod, utc_now
from .thresholds import ThresholdLevel, due_thresholds, rounded_percentage

logger = logging.getLogger(__name__)


class ThresholdCheck(BaseModel):
    budget_id: str
    period: BudgetPeriod
    percentage: int
    fired: List[ThresholdLevel] = []
    failed_deliveries: int = 0


def build_intent(
    level: ThresholdLevel,
    budget_id: str,
    category: str,
    percentage: int,
    current: Decimal,
    limit: Decimal,
    group: Optional[GroupContext] = None,
) -> NotificationIntent:
    fields = dict(
        budget_id=budget_id,
        category=category,
        percentage=percentage,
        current=current,
        limit=limit,
        group_id=group.group_id if group else None,
        group_name=group.group_name if group else None,
    )
    if level == ThresholdLevel.WARNING:
        return WarningIntent(**fields)
    if level == ThresholdLevel.CRITICAL:
        return CriticalIntent(**fields)
    return ExceededIntent(overage=current - limit, **fields)


class ThresholdNotifier:
    """Runs threshold checks against a tracker store and a notification sink."""

    def __init__(
        self,
        trackers: TrackerStore,
        sink: NotificationSink,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.trackers = trackers
        self.sink = sink
        self.clock = clock

    async def check_and_notify(
        self,
        budget_id: str,
        owner_id: str,
        category: str,
        total_spent: Decimal,
        budget_limit: Decimal,
        period: BudgetPeriod,
        group: Optional[GroupContext] = None,
    ) -> Optional[ThresholdCheck]:
        """Emit every newly crossed threshold once for this budget and period.

        Returns what happened, or None if the check itself failed (the
        failure is logged).
        """
        try:
            return await self._check(
                budget_id, owner_id, category, total_spent, budget_limit, period, group
            )
        except Exception:
            logger.exception(f"Threshold check failed for budget {budget_id} ({period})")
            return None

    async def _check(
        self,
        budget_id: str,
        owner_id: str,
        category: str,
        total_spent: Decimal,
        budget_limit: Decimal,
        period: BudgetPeriod,
        group: Optional[GroupContext],
    ) -> ThresholdCheck:
        percentage = rounded_percentage(total_spent, budget_limit)
        now = self.clock()

        tracker = await self.trackers.get_or_create_tracker(
            budget_id, owner_id, category, period, now
        )
        due = due_thresholds(percentage, tracker)
        check = ThresholdCheck(budget_id=budget_id, period=period, percentage=percentage)
        if not due:
            return check

        claimed = await self.trackers.update_tracker(tracker.id, due, now)
        if not claimed:
            logger.debug(f"Thresholds {due} for budget {budget_id} already claimed elsewhere")
            return check

        logger.info(
            f"Triggering {', '.join(level.value for level in claimed)} "
            f"for budget {budget_id} at {percentage}%"
        )
        intents = [
            build_intent(level, budget_id, category, percentage, total_spent, budget_limit, group)
            for level in claimed
        ]
        recipients = group.member_ids if group and group.member_ids else [owner_id]
        check.fired = claimed
        check.failed_deliveries = await self._deliver(recipients, intents)
        return check

    async def _deliver(self, recipients: List[str], intents: List[NotificationIntent]) -> int:
        # one at a time: sinks may share a database session with the caller
        failures = 0
        for recipient in recipients:
            for intent in intents:
                try:
                    await self.sink.emit(recipient, intent)
                except NotificationError as exc:
                    failures += 1
                    logger.error(f"Could not deliver {intent.type} alert to {recipient}: {exc}")
                except Exception:
                    failures += 1
                    logger.exception(f"Unexpected error delivering {intent.type} alert to {recipient}")
        return failures


async def sweep_stale_trackers(
    trackers: TrackerStore, now: Optional[datetime] = None
) -> int:
    """Delete trackers from periods in earlier calendar years.

    Only the year is compared, so trackers from earlier months of the
    current year are kept until January.
    """
    year = (now or datetime.now()).year
    deleted = await trackers.delete_trackers_older_than(year)
    if deleted:
        logger.info(f"Deleted {deleted} threshold trackers older than {year}")
    return deleted
