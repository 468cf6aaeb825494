from datetime import datetime, timedelta, timezone

import pytest

from conftest import API, assign, auth_header
from expense_tracker.models.account import Role


@pytest.fixture
def team(client, make_account):
    """Owner O with employees E1 and E2, plus an unrelated account X."""
    owner = make_account("o@x.com", Role.OWNER)
    e1 = make_account("e1@x.com")
    e2 = make_account("e2@x.com")
    outsider = make_account("x@x.com")
    assert assign(client, owner["access_token"], e1["id"]).status_code == 200
    assert assign(client, owner["access_token"], e2["id"]).status_code == 200
    return {"o": owner, "e1": e1, "e2": e2, "x": outsider}


def create_expense(client, caller, **fields):
    body = {"title": "Lunch", "amount": 12.5, **fields}
    response = client.post(f"{API}/expenses", json=body, headers=auth_header(caller["access_token"]))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def list_expenses(client, caller, **params):
    response = client.get(f"{API}/expenses", params=params, headers=auth_header(caller["access_token"]))
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_owner_creates_for_employee(client, team):
    expense = create_expense(client, team["o"], userId=team["e1"]["id"], title="Taxi")
    assert expense["userId"] == team["e1"]["id"]

    owner_view = list_expenses(client, team["o"])
    assert expense["id"] in [e["id"] for e in owner_view["expenses"]]

    assert list_expenses(client, team["x"])["expenses"] == []

    direct = client.get(f"{API}/expenses/{expense['id']}", headers=auth_header(team["x"]["access_token"]))
    assert direct.status_code == 404
    assert direct.json()["message"] == "Expense not found"


def test_scope_containment(client, team):
    mine = create_expense(client, team["o"], amount=10)
    e1_row = create_expense(client, team["e1"], amount=20)
    e2_row = create_expense(client, team["e2"], amount=30)
    x_row = create_expense(client, team["x"], amount=40)

    owner_view = list_expenses(client, team["o"])
    assert {e["id"] for e in owner_view["expenses"]} == {mine["id"], e1_row["id"], e2_row["id"]}
    assert owner_view["count"] == 3
    assert owner_view["total"] == 60.0

    e1_view = list_expenses(client, team["e1"])
    assert [e["id"] for e in e1_view["expenses"]] == [e1_row["id"]]

    x_view = list_expenses(client, team["x"])
    assert [e["id"] for e in x_view["expenses"]] == [x_row["id"]]


def test_filter_by_employee(client, team):
    create_expense(client, team["o"])
    e2_row = create_expense(client, team["e2"])

    filtered = list_expenses(client, team["o"], userId=team["e2"]["id"])
    assert [e["id"] for e in filtered["expenses"]] == [e2_row["id"]]


def test_out_of_scope_target_is_forbidden(client, team):
    headers = auth_header(team["o"]["access_token"])

    listing = client.get(f"{API}/expenses", params={"userId": team["x"]["id"]}, headers=headers)
    assert listing.status_code == 403
    assert listing.json()["error"] == "forbidden"

    creating = client.post(
        f"{API}/expenses",
        json={"title": "Sneaky", "amount": 1, "userId": team["x"]["id"]},
        headers=headers,
    )
    assert creating.status_code == 403

    # A plain user cannot target even a colleague
    colleague = client.post(
        f"{API}/expenses",
        json={"title": "Sneaky", "amount": 1, "userId": team["e2"]["id"]},
        headers=auth_header(team["e1"]["access_token"]),
    )
    assert colleague.status_code == 403


def test_owner_updates_and_deletes_employee_rows(client, team):
    row = create_expense(client, team["e1"], amount=5)
    headers = auth_header(team["o"]["access_token"])

    updated = client.patch(f"{API}/expenses/{row['id']}", json={"amount": 7.25}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["amount"] == 7.25

    assert client.delete(f"{API}/expenses/{row['id']}", headers=headers).status_code == 200
    assert client.get(f"{API}/expenses/{row['id']}", headers=headers).status_code == 404


def test_outsider_cannot_touch_rows(client, team):
    row = create_expense(client, team["e1"])
    headers = auth_header(team["x"]["access_token"])

    assert client.patch(f"{API}/expenses/{row['id']}", json={"amount": 1}, headers=headers).status_code == 404
    assert client.delete(f"{API}/expenses/{row['id']}", headers=headers).status_code == 404
    # Employees do not see their owner's rows either
    owner_row = create_expense(client, team["o"])
    assert client.get(
        f"{API}/expenses/{owner_row['id']}", headers=auth_header(team["e1"]["access_token"])
    ).status_code == 404


def test_unknown_expense_is_404(client, team):
    response = client.get(f"{API}/expenses/99999", headers=auth_header(team["o"]["access_token"]))
    assert response.status_code == 404


def test_unassigned_employee_leaves_scope(client, team):
    row = create_expense(client, team["e1"])
    headers = auth_header(team["o"]["access_token"])
    assert client.delete(f"{API}/users/employees/{team['e1']['id']}", headers=headers).status_code == 204

    assert row["id"] not in [e["id"] for e in list_expenses(client, team["o"])["expenses"]]
    assert client.get(f"{API}/expenses/{row['id']}", headers=headers).status_code == 404


def test_date_filters_and_ordering(client, team):
    now = datetime.now(timezone.utc)
    old = create_expense(client, team["e1"], date=(now - timedelta(days=400)).isoformat())
    recent = create_expense(client, team["e1"], date=(now - timedelta(hours=1)).isoformat())

    everything = list_expenses(client, team["e1"])
    assert [e["id"] for e in everything["expenses"]] == [recent["id"], old["id"]]

    this_year = list_expenses(client, team["e1"], period="yearly")
    assert old["id"] not in [e["id"] for e in this_year["expenses"]]

    ranged = list_expenses(
        client, team["e1"],
        startDate=(now - timedelta(days=500)).isoformat(),
        endDate=(now - timedelta(days=300)).isoformat(),
    )
    assert [e["id"] for e in ranged["expenses"]] == [old["id"]]


def test_category_filter_and_statistics(client, team, make_account):
    admin = make_account("admin@x.com", Role.ADMIN)
    category = client.post(
        f"{API}/expense-categories",
        json={"name": "Travel"},
        headers=auth_header(admin["access_token"]),
    ).json()["data"]

    create_expense(client, team["o"], amount=10, categoryId=category["id"])
    create_expense(client, team["e1"], amount=30, categoryId=category["id"])
    create_expense(client, team["e2"], amount=20)
    create_expense(client, team["x"], amount=1000)

    travel = list_expenses(client, team["o"], categoryId=category["id"])
    assert travel["count"] == 2
    assert travel["expenses"][0]["category"]["name"] == "Travel"

    response = client.get(f"{API}/expenses/statistics", headers=auth_header(team["o"]["access_token"]))
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total"] == 60.0
    assert stats["count"] == 3
    assert stats["average"] == 20.0
    by_category = {c["name"]: c["total"] for c in stats["byCategory"]}
    assert by_category == {"Travel": 40.0, "Uncategorized": 20.0}
    assert stats["byUser"][str(team["e1"]["id"])] == 30.0


def test_unknown_category_on_create(client, team):
    response = client.post(
        f"{API}/expenses",
        json={"title": "Lunch", "amount": 3, "categoryId": 12345},
        headers=auth_header(team["e1"]["access_token"]),
    )
    assert response.status_code == 404


def test_invalid_amount_is_400(client, team):
    response = client.post(
        f"{API}/expenses",
        json={"title": "Lunch", "amount": -3},
        headers=auth_header(team["e1"]["access_token"]),
    )
    assert response.status_code == 400
