"""HTTP tests: tenant scoping, status code mapping and end-to-end flows."""

from datetime import timedelta
from decimal import Decimal

from ledgerplan.db.core import utcnow


def _headers(tenant):
    return {"X-Company-Id": str(tenant["company"].id)}


def _expense_payload(tenant, **overrides):
    payload = {
        "date": "2024-01-15T10:00:00Z",
        "description": "Office chairs",
        "transaction_type": "expense",
        "category_id": tenant["expense_category"].id,
        "account_from_id": tenant["bank"].id,
        "amount": "250.00",
    }
    payload.update(overrides)
    return payload


# ===== TENANT RESOLUTION =====

def test_missing_company_header_is_bad_request(client, tenant):
    response = client.get("/accounts/")
    assert response.status_code == 400


def test_non_numeric_company_header_is_bad_request(client, tenant):
    response = client.get("/accounts/", headers={"X-Company-Id": "acme"})
    assert response.status_code == 400


def test_unknown_company_is_not_found(client, tenant):
    response = client.get("/accounts/", headers={"X-Company-Id": "9999"})
    assert response.status_code == 404


def test_rows_of_other_company_are_not_found(client, tenant, other_tenant):
    response = client.get(f"/accounts/{tenant['bank'].id}", headers=_headers(other_tenant))
    assert response.status_code == 404


# ===== CRUD =====

def test_company_and_account_creation(client):
    response = client.post("/companies/", json={"name": "Initech", "default_currency": "usd"})
    assert response.status_code == 201
    company = response.json()
    assert company["default_currency"] == "USD"

    headers = {"X-Company-Id": str(company["id"])}
    response = client.post("/accounts/", json={"name": "Checking", "account_type": "bank"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["currency"] == "USD"

    response = client.post("/accounts/", json={"name": "Checking", "account_type": "bank"}, headers=headers)
    assert response.status_code == 400


def test_account_delete_refused_while_referenced(client, tenant):
    response = client.post("/transactions/", json=_expense_payload(tenant), headers=_headers(tenant))
    assert response.status_code == 201

    response = client.delete(f"/accounts/{tenant['bank'].id}", headers=_headers(tenant))
    assert response.status_code == 409

    response = client.delete(f"/accounts/{tenant['cash'].id}", headers=_headers(tenant))
    assert response.status_code == 204


def test_category_delete_refused_while_referenced(client, tenant):
    client.post("/transactions/", json=_expense_payload(tenant), headers=_headers(tenant))

    response = client.delete(f"/categories/{tenant['expense_category'].id}", headers=_headers(tenant))
    assert response.status_code == 409


def test_category_parent_must_be_same_company(client, tenant, other_tenant):
    response = client.post("/categories/", json={
        "name": "Sub", "flow_type": "expense", "parent_id": other_tenant["expense_category"].id
    }, headers=_headers(tenant))
    assert response.status_code == 400


def test_transaction_with_foreign_category_is_rejected(client, tenant, other_tenant):
    response = client.post(
        "/transactions/",
        json=_expense_payload(tenant, category_id=other_tenant["expense_category"].id),
        headers=_headers(tenant),
    )
    assert response.status_code == 400


def test_transaction_account_rules_are_enforced(client, tenant):
    response = client.post(
        "/transactions/",
        json=_expense_payload(tenant, account_to_id=tenant["cash"].id),
        headers=_headers(tenant),
    )
    assert response.status_code == 400


def test_forecast_net_defaults_to_income_minus_expense(client, tenant):
    response = client.post("/forecasts/", json={
        "start_date": "2024-01-01T00:00:00Z",
        "end_date": "2024-12-31T00:00:00Z",
        "projected_income_total": "1000.00",
        "projected_expense_total": "400.00",
    }, headers=_headers(tenant))

    assert response.status_code == 201
    assert Decimal(str(response.json()["projected_net"])) == Decimal("600")
    assert response.json()["currency"] == "MXN"


# ===== PLANS, ENTRIES AND RECONCILIATION =====

def test_plan_lifecycle_over_http(client, tenant):
    start = (utcnow() + timedelta(days=400)).replace(day=15, microsecond=0)
    response = client.post("/recurring_plans/", json={
        "name": "Cloud hosting",
        "flow_type": "expense",
        "category_id": tenant["expense_category"].id,
        "account_expected_id": tenant["bank"].id,
        "amount_estimated": "120.00",
        "frequency": "monthly",
        "start_date": start.isoformat(),
    }, headers=_headers(tenant))
    assert response.status_code == 201
    plan = response.json()
    assert plan["version"] == 1

    entries = client.get(f"/recurring_plans/{plan['id']}/entries", headers=_headers(tenant)).json()
    assert len(entries) > 0
    assert all(e["status"] == "planned" for e in entries)

    first = entries[0]
    response = client.post("/transactions/", json=_expense_payload(
        tenant, amount="120.00", planned_entry_id=first["id"]
    ), headers=_headers(tenant))
    assert response.status_code == 201

    entry = client.get(f"/planned_entries/{first['id']}", headers=_headers(tenant)).json()
    assert entry["status"] == "covered"

    response = client.put(f"/recurring_plans/{plan['id']}", json={"name": "Hosting"}, headers=_headers(tenant))
    assert response.json()["version"] == 1

    response = client.delete(f"/recurring_plans/{plan['id']}", headers=_headers(tenant))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    remaining = client.get(f"/recurring_plans/{plan['id']}/entries", headers=_headers(tenant)).json()
    assert [e["id"] for e in remaining] == [first["id"]]

    response = client.post(f"/recurring_plans/{plan['id']}/regenerate", headers=_headers(tenant))
    assert response.status_code == 400


def test_cancelled_entry_cannot_be_linked(client, tenant):
    response = client.post("/planned_entries/", json={
        "name": "Insurance",
        "flow_type": "expense",
        "category_id": tenant["expense_category"].id,
        "account_expected_id": tenant["bank"].id,
        "amount_estimated": "300",
        "due_date": "2030-01-01T00:00:00Z",
    }, headers=_headers(tenant))
    entry_id = response.json()["id"]

    client.put(f"/planned_entries/{entry_id}", json={"status": "cancelled"}, headers=_headers(tenant))

    response = client.post("/transactions/", json=_expense_payload(tenant, planned_entry_id=entry_id),
                           headers=_headers(tenant))
    assert response.status_code == 400


# ===== TIMELINE =====

def test_timeline_endpoint_returns_dense_buckets(client, tenant):
    client.post("/transactions/", json=_expense_payload(tenant), headers=_headers(tenant))

    response = client.get(
        "/timeline",
        params={"mode": "month", "from": "2024-01-01T00:00:00Z", "to": "2024-04-01T00:00:00Z"},
        headers=_headers(tenant),
    )

    assert response.status_code == 200
    buckets = response.json()
    assert [b["start"] for b in buckets] == [
        "2024-01-01T00:00:00.000Z", "2024-02-01T00:00:00.000Z", "2024-03-01T00:00:00.000Z"
    ]
    assert buckets[0]["real_expense"] == 250.0
    assert buckets[2]["cumulative_real"] == -250.0


def test_timeline_rejects_bad_mode_and_dates(client, tenant):
    params = {"mode": "fortnight", "from": "2024-01-01T00:00:00Z", "to": "2024-04-01T00:00:00Z"}
    assert client.get("/timeline", params=params, headers=_headers(tenant)).status_code == 400

    params = {"mode": "day", "from": "yesterday", "to": "2024-04-01T00:00:00Z"}
    assert client.get("/timeline", params=params, headers=_headers(tenant)).status_code == 400

    params = {"mode": "day", "from": "2024-01-01T00:00:00Z"}
    assert client.get("/timeline", params=params, headers=_headers(tenant)).status_code == 400
