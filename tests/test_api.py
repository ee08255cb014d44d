from datetime import datetime, timedelta, timezone
from decimal import Decimal

from budget_alerts.errors import StoreError
from budget_alerts.services.periods import BudgetPeriod
from budget_alerts.services.thresholds import new_tracker
from budget_alerts.stores.memory import InMemoryBudgetStore

SEPTEMBER = {"month": 9, "year": 2026}


def create_budget(client, category="Groceries", limit="500", headers=None):
    return client.post(
        "/api/budgets/",
        json={"category": category, "monthly_limit": limit, **SEPTEMBER},
        headers=headers or {},
    )


def add_expense(client, amount, category="Groceries", headers=None):
    return client.post(
        "/api/expenses/",
        json={"category": category, "amount": amount, "date": "2026-09-05T12:00:00"},
        headers=headers or {},
    )


def test_create_budget_reports_allocation(client):
    client.post("/api/income/", json={"name": "Salary", "amount": "4000"})
    client.post("/api/savings-goals/", json={"name": "Rainy day", "monthly_contribution": "800"})

    response = create_budget(client, limit="3500")

    assert response.status_code == 201
    body = response.json()
    assert body["budget"]["id"] == "alice_Groceries_2026_9"
    assert body["budget"]["created_by"] == "alice"
    assert body["allocation"]["is_valid"] is False
    assert Decimal(body["allocation"]["over_allocation"]) == Decimal(300)


def test_duplicate_budget_is_rejected(client):
    assert create_budget(client).status_code == 201
    response = create_budget(client, category="  Groceries ")
    assert response.status_code == 409


def test_budget_limit_must_be_positive(client):
    assert create_budget(client, limit="0").status_code == 422
    assert create_budget(client, category="   ").status_code == 422


def test_expense_fires_alerts_once(client, stores):
    create_budget(client)

    first = add_expense(client, "510")
    assert first.status_code == 201
    assert first.json()["fired_alerts"] == ["warning", "critical", "exceeded"]

    second = add_expense(client, "10")
    assert second.status_code == 201
    assert second.json()["fired_alerts"] == []
    assert len(stores.notifications.sent) == 3


def test_expense_without_budget_is_still_saved(client, stores):
    response = add_expense(client, "25", category="Travel")
    assert response.status_code == 201
    assert response.json()["fired_alerts"] == []

    listed = client.get("/api/expenses/", params=SEPTEMBER)
    assert [e["category"] for e in listed.json()] == ["Travel"]


def test_usage_report(client):
    create_budget(client)
    create_budget(client, category="Books", limit="100")
    add_expense(client, "510")
    add_expense(client, "5", category="Books")

    response = client.get("/api/budgets/usage", params=SEPTEMBER)

    assert response.status_code == 200
    body = response.json()
    assert [u["category"] for u in body["usage"]] == ["Groceries", "Books"]
    assert body["usage"][0]["status"] == "over"
    assert body["usage"][0]["percentage_used"] == 102
    assert body["summary"]["categories_over_budget"] == 1
    assert Decimal(body["summary"]["total_spent"]) == Decimal(515)


def test_single_budget_usage(client):
    create_budget(client)
    add_expense(client, "400")

    response = client.get("/api/budgets/alice_Groceries_2026_9/usage")
    assert response.status_code == 200
    assert response.json()["status"] == "warning"

    assert client.get("/api/budgets/bob_Groceries_2026_9/usage").status_code == 404


def test_impact_preview(client, stores):
    create_budget(client)
    add_expense(client, "400")

    response = client.post(
        "/api/budgets/impact",
        json={"category": "Groceries", "amount": "150", "date": "2026-09-20T10:00:00"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["will_exceed_budget"] is True
    assert body["previous_status"] == "warning"
    assert Decimal(body["amount_over_budget"]) == Decimal(50)

    missing = client.post(
        "/api/budgets/impact",
        json={"category": "Travel", "amount": "10", "date": "2026-09-20T10:00:00"},
    )
    assert missing.status_code == 404


def test_allocation_endpoints(client):
    client.post("/api/income/", json={"name": "Salary", "amount": "4000"})
    client.post("/api/income/", json={"name": "Bonus", "amount": "1200", "frequency": "yearly"})
    create_budget(client, limit="3000")

    state = client.get("/api/allocation/", params=SEPTEMBER).json()
    assert Decimal(state["total_monthly_income"]) == Decimal(4100)
    assert Decimal(state["unallocated"]) == Decimal(1100)

    check = client.post(
        "/api/allocation/validate", params=SEPTEMBER, json={"budget_delta": "1200"}
    ).json()
    assert check["is_valid"] is False
    assert Decimal(check["over_allocation"]) == Decimal(100)


def test_group_budget_alerts_every_member(client, stores):
    stores.groups.add_group("g1", "Household", ["alice", "bob"])
    headers = {"X-Group-ID": "g1"}

    assert create_budget(client, headers=headers).json()["budget"]["id"] == "g1_Groceries_2026_9"
    response = add_expense(client, "460", headers=headers)

    assert response.json()["fired_alerts"] == ["warning", "critical"]
    assert sorted(r for r, _ in stores.notifications.sent) == ["alice", "alice", "bob", "bob"]


def test_group_access_requires_membership(client, stores):
    stores.groups.add_group("g2", "Flatmates", ["bob"])
    response = client.get("/api/budgets/", headers={"X-Group-ID": "g2"})
    assert response.status_code == 403


class UnavailableBudgetStore(InMemoryBudgetStore):
    async def list_budgets(self, scope, period):
        raise StoreError("connection refused")


def test_store_outage_is_503(client, stores):
    stores.budgets = UnavailableBudgetStore()
    response = client.get("/api/budgets/", params=SEPTEMBER)
    assert response.status_code == 503


def test_sweep_requires_configured_token(client, monkeypatch):
    monkeypatch.delenv("SWEEP_TOKEN", raising=False)
    assert client.post("/api/trackers/sweep").status_code == 503

    monkeypatch.setenv("SWEEP_TOKEN", "s3cret")
    assert client.post("/api/trackers/sweep", headers={"X-Sweep-Token": "nope"}).status_code == 403


def test_sweep_deletes_trackers_of_past_years(client, stores, monkeypatch):
    monkeypatch.setenv("SWEEP_TOKEN", "s3cret")
    this_year = datetime.now().year
    for year in (this_year - 1, this_year):
        tracker = new_tracker("b1", "alice", "Groceries", BudgetPeriod(month=1, year=year), datetime.now())
        stores.trackers.trackers[tracker.id] = tracker

    response = client.post("/api/trackers/sweep", headers={"X-Sweep-Token": "s3cret"})

    assert response.status_code == 200
    assert response.json() == {"year": this_year, "deleted": 1}
    assert list(stores.trackers.trackers) == [f"b1_{this_year}_1"]


def test_raising_a_limit_only_counts_the_difference(client):
    client.post("/api/income/", json={"name": "Salary", "amount": "1000"})
    create_budget(client, limit="800")

    response = client.put("/api/budgets/alice_Groceries_2026_9", json={"monthly_limit": "900"})

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["budget"]["monthly_limit"]) == Decimal(900)
    assert Decimal(body["allocation"]["new_total_budgets"]) == Decimal(900)
    assert body["allocation"]["is_valid"] is True
    assert Decimal(body["allocation"]["unallocated"]) == Decimal(100)


def test_over_allocating_update_is_saved_with_a_warning(client):
    client.post("/api/income/", json={"name": "Salary", "amount": "1000"})
    create_budget(client, limit="800")

    response = client.put("/api/budgets/alice_Groceries_2026_9", json={"monthly_limit": "1200"})

    assert response.status_code == 200
    assert response.json()["allocation"]["is_valid"] is False
    assert Decimal(response.json()["allocation"]["over_allocation"]) == Decimal(200)
    usage = client.get("/api/budgets/alice_Groceries_2026_9/usage").json()
    assert Decimal(usage["budget_limit"]) == Decimal(1200)


def test_update_rejects_bad_limits_and_foreign_budgets(client, stores):
    create_budget(client)
    assert client.put("/api/budgets/alice_Groceries_2026_9", json={"monthly_limit": "0"}).status_code == 422
    assert client.put("/api/budgets/bob_Groceries_2026_9", json={"monthly_limit": "10"}).status_code == 404

    stores.groups.add_group("g1", "Household", ["alice"])
    response = client.put(
        "/api/budgets/alice_Groceries_2026_9",
        json={"monthly_limit": "10"},
        headers={"X-Group-ID": "g1"},
    )
    assert response.status_code == 404


def test_delete_budget(client):
    create_budget(client)

    assert client.delete("/api/budgets/alice_Groceries_2026_9").status_code == 204
    assert client.get("/api/budgets/", params=SEPTEMBER).json() == []
    assert client.delete("/api/budgets/alice_Groceries_2026_9").status_code == 404


class RacingBudgetStore(InMemoryBudgetStore):
    async def get_budget(self, scope, category, period):
        return None


def test_concurrent_duplicate_create_is_409(client, stores):
    stores.budgets = RacingBudgetStore()
    assert create_budget(client).status_code == 201
    assert create_budget(client).status_code == 409


def test_expense_with_offset_is_listed_in_its_checked_period(client):
    month_end = datetime(2026, 9, 30, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    local = month_end.astimezone().replace(tzinfo=None)
    period = {"month": local.month, "year": local.year}

    saved = client.post(
        "/api/expenses/",
        json={"category": "Groceries", "amount": "20", "date": month_end.isoformat()},
    ).json()["expense"]

    assert datetime.fromisoformat(saved["date"]) == local
    listed = client.get("/api/expenses/", params=period).json()
    assert [e["id"] for e in listed] == [saved["id"]]
