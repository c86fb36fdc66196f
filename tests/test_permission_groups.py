import pytest


@pytest.fixture
def catalog(db):
    return {p["key"]: p["id"] for p in db.rows("permissions")}


def create_group(client, user, **payload):
    return client.post("/api/v1/permission-groups", json=payload, headers=user["headers"])


def test_create_group_with_items(client, owner, catalog):
    response = create_group(
        client, owner,
        name="Support",
        permission_ids=[catalog["leads.view"], catalog["leads.update"]],
        items=[{"permission_id": catalog["leads.update"], "enabled": False}],
    )
    assert response.status_code == 201
    items = {i["key"]: i["enabled"] for i in response.json()["items"]}
    assert items == {"leads.view": True, "leads.update": False}


def test_group_names_are_unique_per_workspace(client, owner, other_owner):
    assert create_group(client, owner, name="Support").status_code == 201
    assert create_group(client, owner, name="Support").status_code == 409
    assert create_group(client, other_owner, name="Support").status_code == 201


def test_unknown_permission_ids_are_rejected(client, owner):
    response = create_group(client, owner, name="Broken", permission_ids=["nope"])
    assert response.status_code == 400


def test_group_revocation_applies_to_members(client, owner, make_user, catalog):
    group = create_group(
        client, owner,
        name="Read only",
        items=[{"permission_id": catalog["leads.create"], "enabled": False}],
    ).json()
    member = make_user("user", owner["workspace_id"], permission_group_id=group["id"])

    response = client.post("/api/v1/leads", json={"phone": "5511999990000"}, headers=member["headers"])
    assert response.status_code == 403
    assert client.get("/api/v1/leads", headers=member["headers"]).status_code == 200


def test_group_grant_applies_to_members(client, owner, make_user, catalog):
    group = create_group(client, owner, name="Cleaners", permission_ids=[catalog["leads.delete"]]).json()
    member = make_user("user", owner["workspace_id"], permission_group_id=group["id"])
    assert client.delete("/api/v1/leads/missing", headers=member["headers"]).status_code == 404


def test_foreign_group_grants_nothing(client, owner, other_owner, make_user, catalog):
    foreign = create_group(client, other_owner, name="Cleaners", permission_ids=[catalog["leads.delete"]]).json()
    member = make_user("user", owner["workspace_id"], permission_group_id=foreign["id"])
    assert client.delete("/api/v1/leads/missing", headers=member["headers"]).status_code == 403


def test_groups_of_other_workspaces_are_not_found(client, owner, other_owner):
    group = create_group(client, other_owner, name="Private").json()
    assert client.get(f"/api/v1/permission-groups/{group['id']}", headers=owner["headers"]).status_code == 404
    assert client.delete(f"/api/v1/permission-groups/{group['id']}", headers=owner["headers"]).status_code == 404


def test_update_replaces_items(client, owner, catalog):
    group = create_group(client, owner, name="Team", permission_ids=[catalog["leads.view"]]).json()
    response = client.put(
        f"/api/v1/permission-groups/{group['id']}",
        json={"permission_ids": [catalog["agents.view"]]},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    assert [i["key"] for i in response.json()["items"]] == ["agents.view"]


def test_delete_group_detaches_users(client, db, owner, make_user):
    group = create_group(client, owner, name="Temporary").json()
    member = make_user("user", owner["workspace_id"], permission_group_id=group["id"])

    response = client.delete(f"/api/v1/permission-groups/{group['id']}", headers=owner["headers"])
    assert response.status_code == 204
    user = next(u for u in db.rows("users") if u["id"] == member["id"])
    assert user["permission_group_id"] is None
    assert db.rows("permission_group_items") == []


def test_plain_users_cannot_manage_groups(client, owner, make_user):
    member = make_user("user", owner["workspace_id"])
    assert client.get("/api/v1/permission-groups", headers=member["headers"]).status_code == 403


def test_permission_catalog_is_grouped(client, owner):
    response = client.get("/api/v1/permissions", headers=owner["headers"])
    assert response.status_code == 200
    grouped = response.json()
    assert {p["key"] for p in grouped["Leads"]["default"]} == {
        "leads.view", "leads.create", "leads.update", "leads.delete",
    }


def test_group_grant_of_user_actions(client, owner, make_user, catalog):
    group = create_group(
        client, owner, name="Recruiters", permission_ids=[catalog["users.create"], catalog["users.delete"]]
    ).json()
    recruiter = make_user("user", owner["workspace_id"], permission_group_id=group["id"])
    plain = make_user("user", owner["workspace_id"])
    invite = {"name": "New Hire", "email": "hire@navibot.com"}

    assert client.post("/api/v1/users", json=invite, headers=plain["headers"]).status_code == 403
    created = client.post("/api/v1/users", json=invite, headers=recruiter["headers"])
    assert created.status_code == 201
    hire_id = created.json()["user"]["id"]

    assert client.delete(f"/api/v1/users/{hire_id}", headers=plain["headers"]).status_code == 403
    assert client.delete(f"/api/v1/users/{hire_id}", headers=recruiter["headers"]).status_code == 204


def test_user_actions_grant_no_escalation(client, owner, make_user, catalog):
    group = create_group(
        client, owner, name="Recruiters",
        permission_ids=[catalog["users.create"], catalog["users.update"], catalog["users.delete"]],
    ).json()
    recruiter = make_user("user", owner["workspace_id"], permission_group_id=group["id"])
    admin = make_user("admin", owner["workspace_id"])

    as_admin = {"name": "Boss", "email": "boss@navibot.com", "role": "admin"}
    assert client.post("/api/v1/users", json=as_admin, headers=recruiter["headers"]).status_code == 403
    in_group = {"name": "Peer", "email": "peer@navibot.com", "permission_group_id": group["id"]}
    assert client.post("/api/v1/users", json=in_group, headers=recruiter["headers"]).status_code == 403

    rename = client.put(f"/api/v1/users/{admin['id']}", json={"name": "X"}, headers=recruiter["headers"])
    assert rename.status_code == 403
    assert client.delete(f"/api/v1/users/{admin['id']}", headers=recruiter["headers"]).status_code == 403
    promote = client.put(f"/api/v1/users/{recruiter['id']}", json={"role": "admin"}, headers=recruiter["headers"])
    assert promote.status_code == 403
