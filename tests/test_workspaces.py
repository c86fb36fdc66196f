import pytest


def test_get_and_rename_workspace(client, owner, make_user):
    current = client.get("/api/v1/workspace", headers=owner["headers"])
    assert current.json()["id"] == owner["workspace_id"]

    renamed = client.put("/api/v1/workspace", json={"name": "Loja da Ana"}, headers=owner["headers"])
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Loja da Ana"

    admin = make_user("admin", owner["workspace_id"])
    assert client.put("/api/v1/workspace", json={"name": "X"}, headers=admin["headers"]).status_code == 403


def test_workspace_members_are_scoped(client, owner, other_owner, make_user):
    make_user("user", owner["workspace_id"], name="Bruno")
    members = client.get("/api/v1/workspace/users", headers=owner["headers"]).json()
    assert {m["name"] for m in members} == {owner["name"], "Bruno"}
    assert other_owner["id"] not in [m["id"] for m in members]


@pytest.fixture
def foreign(client, db, other_owner):
    """One resource of each kind owned by the other workspace"""
    headers = other_owner["headers"]
    lead = client.post("/api/v1/leads", json={"phone": "11987654321"}, headers=headers).json()
    agent = client.post("/api/v1/agents", json={"name": "Alheio"}, headers=headers).json()
    return {
        "lead": lead,
        "tag": client.post("/api/v1/tags", json={"name": "VIP", "color": "#f00"}, headers=headers).json(),
        "field": client.post("/api/v1/contact-fields", json={"name": "Empresa"}, headers=headers).json(),
        "agent": agent,
        "conversation": client.post("/api/v1/conversations", json={"lead_id": lead["id"]}, headers=headers).json(),
        "connection": db.seed(
            "dispara_ja_connections", workspace_id=other_owner["workspace_id"], agent_id=agent["id"], secret="s",
        ),
    }


@pytest.mark.parametrize("method, path", [
    ("get", "/api/v1/leads/{lead}"),
    ("put", "/api/v1/leads/{lead}"),
    ("delete", "/api/v1/leads/{lead}"),
    ("get", "/api/v1/leads/{lead}/custom-fields"),
    ("get", "/api/v1/tags/{tag}"),
    ("delete", "/api/v1/tags/{tag}"),
    ("put", "/api/v1/contact-fields/{field}"),
    ("delete", "/api/v1/contact-fields/{field}"),
    ("get", "/api/v1/agents/{agent}"),
    ("put", "/api/v1/agents/{agent}"),
    ("delete", "/api/v1/agents/{agent}"),
    ("get", "/api/v1/conversations/{conversation}"),
    ("delete", "/api/v1/conversations/{conversation}"),
    ("put", "/api/v1/dispara-ja/connections/{connection}"),
    ("delete", "/api/v1/dispara-ja/connections/{connection}"),
])
def test_foreign_resources_are_not_found(client, db, owner, foreign, method, path):
    url = path.format(**{name: row["id"] for name, row in foreign.items()})
    kwargs = {"json": {}} if method == "put" else {}
    response = getattr(client, method)(url, headers=owner["headers"], **kwargs)
    assert response.status_code == 404

    # Nothing of the other workspace was touched
    assert len(db.rows("leads")) == 1
    assert len(db.rows("agents")) == 1
    assert len(db.rows("conversations")) == 1


def test_lists_only_show_own_workspace(client, owner, foreign):
    for path in ("leads", "tags", "contact-fields", "agents", "conversations"):
        assert client.get(f"/api/v1/{path}", headers=owner["headers"]).json() == []


def test_health(client):
    assert client.get("/health").status_code == 200
    assert client.get("/ready").status_code == 200
