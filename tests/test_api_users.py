from conftest import API, assign, auth_header
from expense_tracker.models.account import Role


def test_profile_for_any_role(client, make_account):
    user = make_account("u@x.com")
    response = client.get(f"{API}/users/profile", headers=auth_header(user["access_token"]))
    assert response.status_code == 200
    assert response.json()["data"]["id"] == user["id"]


def test_user_role_cannot_manage_users(client, make_account):
    user = make_account("u@x.com")
    headers = auth_header(user["access_token"])

    for response in (
        client.get(f"{API}/users", headers=headers),
        client.get(f"{API}/users/{user['id']}", headers=headers),
        client.get(f"{API}/users/employees", headers=headers),
        client.post(f"{API}/users/employees/{user['id']}", headers=headers),
    ):
        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient role"


def test_assignment_and_listing(client, make_account):
    owner = make_account("o@x.com", Role.OWNER)
    employee = make_account("e@x.com")
    make_account("x@x.com")
    headers = auth_header(owner["access_token"])

    assigned = assign(client, owner["access_token"], employee["id"])
    assert assigned.status_code == 200
    assert assigned.json()["data"]["ownerId"] == owner["id"]

    employees = client.get(f"{API}/users/employees", headers=headers).json()["data"]
    assert employees["count"] == 1
    assert employees["employees"][0]["id"] == employee["id"]

    visible = client.get(f"{API}/users", headers=headers).json()["data"]
    assert {a["email"] for a in visible} == {"o@x.com", "e@x.com"}


def test_admin_sees_everyone(client, make_account):
    admin = make_account("admin@x.com", Role.ADMIN)
    make_account("a@x.com")
    make_account("b@x.com")
    visible = client.get(f"{API}/users", headers=auth_header(admin["access_token"])).json()["data"]
    assert len(visible) == 3


def test_assignment_conflicts(client, make_account):
    a = make_account("a@x.com", Role.OWNER)
    b = make_account("b@x.com", Role.OWNER)
    c = make_account("c@x.com", Role.OWNER)

    assert assign(client, a["access_token"], a["id"]).status_code == 409

    assert assign(client, a["access_token"], b["id"]).status_code == 200
    again = assign(client, a["access_token"], b["id"])
    assert again.status_code == 409
    assert again.json()["message"] == "Employee is already assigned to this owner"

    # B cannot take A, which would close the loop
    cycle = assign(client, b["access_token"], a["id"])
    assert cycle.status_code == 409

    # B already has an owner, so C cannot claim it
    assert assign(client, c["access_token"], b["id"]).status_code == 409

    missing = assign(client, a["access_token"], 99999)
    assert missing.status_code == 404


def test_longer_ownership_cycle_is_rejected(client, make_account):
    a = make_account("a@x.com", Role.OWNER)
    b = make_account("b@x.com", Role.OWNER)
    c = make_account("c@x.com", Role.OWNER)

    assert assign(client, a["access_token"], b["id"]).status_code == 200
    assert assign(client, b["access_token"], c["id"]).status_code == 200

    # A sits above C through B
    closing = assign(client, c["access_token"], a["id"])
    assert closing.status_code == 409
    assert closing.json()["message"] == "Assignment would create an ownership cycle"

    visible = client.get(f"{API}/users/{a['id']}", headers=auth_header(a["access_token"])).json()["data"]
    assert visible["ownerId"] is None


def test_unassign(client, make_account):
    owner = make_account("o@x.com", Role.OWNER)
    other_owner = make_account("p@x.com", Role.OWNER)
    employee = make_account("e@x.com")
    assign(client, owner["access_token"], employee["id"])

    foreign = client.delete(
        f"{API}/users/employees/{employee['id']}", headers=auth_header(other_owner["access_token"])
    )
    assert foreign.status_code == 409
    assert foreign.json()["message"] == "Employee is not assigned to this owner"

    headers = auth_header(owner["access_token"])
    assert client.delete(f"{API}/users/employees/{employee['id']}", headers=headers).status_code == 204
    assert client.delete(f"{API}/users/employees/{employee['id']}", headers=headers).status_code == 409

    # Once free, another owner may claim the employee
    assert assign(client, other_owner["access_token"], employee["id"]).status_code == 200


def test_owner_scope_on_user_records(client, make_account):
    owner = make_account("o@x.com", Role.OWNER)
    employee = make_account("e@x.com")
    outsider = make_account("x@x.com")
    assign(client, owner["access_token"], employee["id"])
    headers = auth_header(owner["access_token"])

    assert client.get(f"{API}/users/{employee['id']}", headers=headers).status_code == 200
    assert client.get(f"{API}/users/{outsider['id']}", headers=headers).status_code == 404
    assert client.get(f"{API}/users/email/e@x.com", headers=headers).status_code == 200
    assert client.get(f"{API}/users/email/x@x.com", headers=headers).status_code == 404

    renamed = client.patch(f"{API}/users/{employee['id']}", json={"firstName": "Eve"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["data"]["firstName"] == "Eve"

    assert client.patch(
        f"{API}/users/{outsider['id']}", json={"firstName": "Mallory"}, headers=headers
    ).status_code == 404
    assert client.delete(f"{API}/users/{outsider['id']}", headers=headers).status_code == 404


def test_only_admin_changes_roles(client, make_account):
    owner = make_account("o@x.com", Role.OWNER)
    admin = make_account("admin@x.com", Role.ADMIN)
    employee = make_account("e@x.com")
    assign(client, owner["access_token"], employee["id"])

    promote = client.patch(
        f"{API}/users/{employee['id']}", json={"role": "owner"}, headers=auth_header(owner["access_token"])
    )
    assert promote.status_code == 403

    promote = client.patch(
        f"{API}/users/{employee['id']}", json={"role": "owner"}, headers=auth_header(admin["access_token"])
    )
    assert promote.status_code == 200
    assert promote.json()["data"]["role"] == "owner"


def test_email_change_conflict(client, make_account):
    admin = make_account("admin@x.com", Role.ADMIN)
    target = make_account("t@x.com")
    make_account("taken@x.com")
    response = client.patch(
        f"{API}/users/{target['id']}", json={"email": "taken@x.com"}, headers=auth_header(admin["access_token"])
    )
    assert response.status_code == 409


def test_admin_deletes_user(client, make_account):
    admin = make_account("admin@x.com", Role.ADMIN)
    target = make_account("t@x.com")
    headers = auth_header(admin["access_token"])

    assert client.delete(f"{API}/users/{target['id']}", headers=headers).status_code == 204
    assert client.get(f"{API}/users/{target['id']}", headers=headers).status_code == 404
    # The deleted account's refresh token has nowhere to land
    response = client.post(f"{API}/auth/refresh", headers=auth_header(target["refresh_token"]))
    assert response.status_code == 401


def test_deleting_owner_releases_employees(client, make_account):
    admin = make_account("admin@x.com", Role.ADMIN)
    owner = make_account("o@x.com", Role.OWNER)
    employee = make_account("e@x.com")
    assert assign(client, owner["access_token"], employee["id"]).status_code == 200

    headers = auth_header(admin["access_token"])
    assert client.delete(f"{API}/users/{owner['id']}", headers=headers).status_code == 204

    released = client.get(f"{API}/users/{employee['id']}", headers=headers).json()["data"]
    assert released["ownerId"] is None
