import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from budget_alerts.errors import StoreError
from budget_alerts.services.monitoring import check_budget_after_expense
from budget_alerts.services.notifier import ThresholdNotifier, sweep_stale_trackers
from budget_alerts.services.domain import Budget, BudgetScope
from budget_alerts.services.periods import BudgetPeriod
from budget_alerts.services.thresholds import (
    ThresholdLevel,
    due_thresholds,
    new_tracker,
    rounded_percentage,
    tracker_id,
)
from budget_alerts.stores.memory import InMemoryTrackerStore

from .conftest import make_expense

PERIOD = BudgetPeriod(month=9, year=2026)
NOW = datetime(2026, 9, 10, 9, 30)
LIMIT = Decimal(500)
ALL_LEVELS = [ThresholdLevel.WARNING, ThresholdLevel.CRITICAL, ThresholdLevel.EXCEEDED]


@pytest.fixture
def notifier(stores):
    return ThresholdNotifier(stores.trackers, stores.notifications, clock=lambda: NOW)


async def check(notifier, spent, group=None):
    return await notifier.check_and_notify(
        budget_id="alice_Groceries_2026_9",
        owner_id="alice",
        category="Groceries",
        total_spent=Decimal(spent),
        budget_limit=LIMIT,
        period=PERIOD,
        group=group,
    )


def test_rounding_is_half_up():
    assert rounded_percentage(Decimal("372.49"), LIMIT) == 74
    assert rounded_percentage(Decimal("372.50"), LIMIT) == 75
    assert rounded_percentage(Decimal(10), Decimal(0)) == 0


def test_due_thresholds_skip_triggered_levels():
    tracker = new_tracker("b1", "alice", "Groceries", PERIOD, NOW)
    assert due_thresholds(74, tracker) == []
    assert due_thresholds(105, tracker) == ALL_LEVELS
    tracker.thresholds[ThresholdLevel.WARNING].triggered = True
    assert due_thresholds(92, tracker) == [ThresholdLevel.CRITICAL]


@pytest.mark.asyncio
async def test_jump_over_budget_fires_every_level(notifier, stores):
    result = await check(notifier, 510)

    assert result.percentage == 102
    assert result.fired == ALL_LEVELS
    assert result.failed_deliveries == 0
    assert [intent.type for _, intent in stores.notifications.sent] == [
        "warning",
        "critical",
        "exceeded",
    ]
    exceeded = stores.notifications.sent[-1][1]
    assert exceeded.overage == Decimal(10)
    assert exceeded.current == Decimal(510)
    assert exceeded.limit == LIMIT

    tracker = stores.trackers.trackers[tracker_id("alice_Groceries_2026_9", PERIOD)]
    assert all(tracker.is_triggered(level) for level in ThresholdLevel)
    assert tracker.thresholds[ThresholdLevel.EXCEEDED].triggered_at == NOW


@pytest.mark.asyncio
async def test_triggered_warning_is_not_sent_again(notifier, stores):
    await check(notifier, 380)
    assert len(stores.notifications.sent) == 1

    result = await check(notifier, 400)
    assert result.percentage == 80
    assert result.fired == []
    assert len(stores.notifications.sent) == 1


@pytest.mark.asyncio
async def test_each_level_fires_once_while_spending_grows(notifier, stores):
    fired = []
    for spent in (100, 376, 380, 450, 460, 499, 500, 520, 700):
        result = await check(notifier, spent)
        fired.extend(result.fired)
    assert fired == ALL_LEVELS
    assert len(stores.notifications.sent) == 3


@pytest.mark.asyncio
async def test_spending_going_down_does_not_reset(notifier, stores):
    await check(notifier, 460)
    await check(notifier, 100)
    result = await check(notifier, 460)
    assert result.fired == []
    assert len(stores.notifications.sent) == 2


@pytest.mark.asyncio
async def test_concurrent_checks_emit_once(notifier, stores):
    results = await asyncio.gather(*(check(notifier, 510) for _ in range(5)))
    fired = [level for result in results for level in result.fired]
    assert sorted(fired) == sorted(ALL_LEVELS)
    assert len(stores.notifications.sent) == 3


@pytest.mark.asyncio
async def test_group_alerts_go_to_every_member(notifier, stores):
    group = stores.groups.add_group("g1", "Household", ["alice", "bob"])
    await check(notifier, 460, group=group)

    recipients = sorted(recipient for recipient, _ in stores.notifications.sent)
    assert recipients == ["alice", "alice", "bob", "bob"]
    intent = stores.notifications.sent[0][1]
    assert intent.group_id == "g1"
    assert intent.group_name == "Household"


@pytest.mark.asyncio
async def test_failed_delivery_keeps_the_claim(notifier, stores):
    group = stores.groups.add_group("g1", "Household", ["alice", "bob"])
    stores.notifications.failing.add("bob")

    result = await check(notifier, 400, group=group)
    assert result.fired == [ThresholdLevel.WARNING]
    assert result.failed_deliveries == 1
    assert [recipient for recipient, _ in stores.notifications.sent] == ["alice"]

    stores.notifications.failing.clear()
    again = await check(notifier, 400, group=group)
    assert again.fired == []


class BrokenTrackerStore(InMemoryTrackerStore):
    async def get_or_create_tracker(self, *args, **kwargs):
        raise StoreError("tracker table unavailable")


@pytest.mark.asyncio
async def test_store_failure_is_swallowed(stores):
    notifier = ThresholdNotifier(BrokenTrackerStore(), stores.notifications)
    assert await check(notifier, 510) is None
    assert stores.notifications.sent == []


@pytest.mark.asyncio
async def test_sweep_only_removes_earlier_years():
    trackers = InMemoryTrackerStore()
    for period in (
        BudgetPeriod(month=12, year=2025),
        BudgetPeriod(month=1, year=2026),
        BudgetPeriod(month=9, year=2026),
    ):
        await trackers.get_or_create_tracker("b1", "alice", "Groceries", period, NOW)

    deleted = await sweep_stale_trackers(trackers, now=datetime(2026, 10, 1))

    assert deleted == 1
    assert sorted(trackers.trackers) == ["b1_2026_1", "b1_2026_9"]


@pytest.mark.asyncio
async def test_monitoring_after_expense(stores):
    scope = BudgetScope.personal("alice")
    budget = await stores.budgets.create_budget(Budget.new(scope, "Groceries", LIMIT, PERIOD))
    await stores.expenses.add_expense(scope, make_expense("Groceries", 300, 2026, 9), "alice")
    await stores.expenses.add_expense(scope, make_expense("Groceries", 160, 2026, 9), "alice")
    await stores.expenses.add_expense(scope, make_expense("Groceries", 400, 2026, 8), "alice")

    result = await check_budget_after_expense(stores, scope, "Groceries", PERIOD, clock=lambda: NOW)

    assert result.budget_id == budget.id
    assert result.percentage == 92
    assert result.fired == [ThresholdLevel.WARNING, ThresholdLevel.CRITICAL]
    assert {recipient for recipient, _ in stores.notifications.sent} == {"alice"}


@pytest.mark.asyncio
async def test_monitoring_without_budget(stores):
    scope = BudgetScope.personal("alice")
    assert await check_budget_after_expense(stores, scope, "Travel", PERIOD) is None
