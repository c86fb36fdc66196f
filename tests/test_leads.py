import pytest

from app.modules.leads.phone import (
    alternative_phone_number, format_phone_number, origin_phone, only_digits
)


@pytest.mark.parametrize("raw, expected", [
    ("(11) 8765-4321", "11987654321"),
    ("11 98765-4321", "11987654321"),
    ("5511987654321", "5511987654321"),
    ("11987654321_originabc", "11987654321_originabc"),
    ("5511987654321@s.whatsapp.net", "5511987654321@s.whatsapp.net"),
])
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


def test_alternative_phone_number_toggles_mobile_nine():
    assert alternative_phone_number("11987654321") == "1187654321"
    assert alternative_phone_number("1187654321") == "11987654321"
    assert alternative_phone_number("5511987654321") is None
    assert alternative_phone_number(origin_phone("11987654321", "x")) is None


def test_only_digits():
    assert only_digits("+55 (11) 9.8765-4321") == "5511987654321"
    assert only_digits(None) == ""


def create_lead(client, user, **payload):
    return client.post("/api/v1/leads", json=payload, headers=user["headers"])


def test_create_lead_normalizes_phone(client, owner):
    response = create_lead(client, owner, name="Maria", phone="(11) 8765-4321")
    assert response.status_code == 201
    body = response.json()
    assert body["phone"] == "11987654321"
    assert body["workspace_id"] == owner["workspace_id"]
    assert body["updated"] is False


def test_create_lead_rejects_short_phone(client, owner):
    response = create_lead(client, owner, phone="1234")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid phone number"


def test_same_phone_and_origin_updates_existing_lead(client, db, owner):
    first = create_lead(client, owner, name="Maria", phone="11987654321", origin_id="site").json()
    again = create_lead(client, owner, phone="1187654321", origin_id="site", stage_id="stage-2")

    assert again.status_code == 200
    body = again.json()
    assert body["id"] == first["id"]
    assert body["updated"] is True
    assert body["stage_id"] == "stage-2"
    assert len(db.rows("leads")) == 1


def test_same_phone_other_origin_creates_suffixed_lead(client, db, owner):
    create_lead(client, owner, phone="11987654321", origin_id="site")
    response = create_lead(client, owner, phone="11987654321", origin_id="ads")

    assert response.status_code == 201
    assert response.json()["phone"] == "11987654321"
    stored = sorted(row["phone"] for row in db.rows("leads"))
    assert stored == ["11987654321", "11987654321_originads"]


def test_repeated_create_for_second_origin_updates_suffixed_lead(client, db, owner):
    create_lead(client, owner, phone="11987654321", origin_id="site")
    suffixed = create_lead(client, owner, phone="11987654321", origin_id="ads").json()
    again = create_lead(client, owner, phone="11987654321", origin_id="ads", stage_id="won")

    assert again.status_code == 200
    assert again.json()["id"] == suffixed["id"]
    assert again.json()["stage_id"] == "won"
    assert len(db.rows("leads")) == 2


def test_same_phone_in_another_workspace_is_independent(client, owner, other_owner):
    create_lead(client, owner, phone="11987654321")
    response = create_lead(client, other_owner, phone="11987654321")
    assert response.status_code == 201
    assert response.json()["updated"] is False


def test_list_leads_filters(client, owner):
    create_lead(client, owner, name="Maria Silva", phone="11987654321", stage_id="s1")
    create_lead(client, owner, name="João Souza", phone="21987654321", stage_id="s2", email="joao@navibot.com")

    everyone = client.get("/api/v1/leads", headers=owner["headers"]).json()
    assert [lead["name"] for lead in everyone] == ["João Souza", "Maria Silva"]

    by_name = client.get("/api/v1/leads", params={"search": "silva"}, headers=owner["headers"]).json()
    assert [lead["name"] for lead in by_name] == ["Maria Silva"]

    by_email = client.get("/api/v1/leads", params={"search": "joao@"}, headers=owner["headers"]).json()
    assert [lead["name"] for lead in by_email] == ["João Souza"]

    by_stage = client.get("/api/v1/leads", params={"stage_id": "s1"}, headers=owner["headers"]).json()
    assert [lead["name"] for lead in by_stage] == ["Maria Silva"]


def test_search_strips_filter_syntax(client, owner):
    create_lead(client, owner, name="Maria Silva", phone="11987654321")
    create_lead(client, owner, name="João Souza", phone="21987654321")

    response = client.get("/api/v1/leads", params={"search": "(silva)*,"}, headers=owner["headers"])
    assert response.status_code == 200
    assert [lead["name"] for lead in response.json()] == ["Maria Silva"]

    only_syntax = client.get("/api/v1/leads", params={"search": ",()*%"}, headers=owner["headers"]).json()
    assert len(only_syntax) == 2


def test_labels_are_validated_and_replaced(client, owner, other_owner):
    vip = client.post("/api/v1/tags", json={"name": "VIP", "color": "#f00"}, headers=owner["headers"]).json()
    hot = client.post("/api/v1/tags", json={"name": "Hot", "color": "#0f0"}, headers=owner["headers"]).json()
    foreign = client.post("/api/v1/tags", json={"name": "X", "color": "#000"}, headers=other_owner["headers"]).json()

    lead = create_lead(client, owner, phone="11987654321", label_ids=[vip["id"]]).json()
    assert [label["name"] for label in lead["labels"]] == ["VIP"]

    rejected = create_lead(client, owner, phone="21987654321", label_ids=[foreign["id"]])
    assert rejected.status_code == 400

    updated = client.put(
        f"/api/v1/leads/{lead['id']}", json={"label_ids": [hot["id"]]}, headers=owner["headers"]
    ).json()
    assert [label["name"] for label in updated["labels"]] == ["Hot"]


def test_update_lead_phone_conflict(client, owner):
    create_lead(client, owner, phone="11987654321")
    other = create_lead(client, owner, phone="21987654321").json()
    response = client.put(f"/api/v1/leads/{other['id']}", json={"phone": "1187654321"}, headers=owner["headers"])
    assert response.status_code == 409


def test_owner_must_belong_to_workspace(client, owner, other_owner):
    response = create_lead(client, owner, phone="11987654321", owner_id=other_owner["id"])
    assert response.status_code == 400


def test_update_stage(client, owner):
    lead = create_lead(client, owner, phone="11987654321").json()
    response = client.patch(
        f"/api/v1/leads/{lead['id']}/stage",
        json={"stage_id": "negotiation", "value": 1500},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    assert response.json()["stage_id"] == "negotiation"
    assert response.json()["value"] == 1500

    missing_stage = client.patch(f"/api/v1/leads/{lead['id']}/stage", json={}, headers=owner["headers"])
    assert missing_stage.status_code == 400


def test_custom_field_values(client, owner):
    plan = client.post(
        "/api/v1/contact-fields",
        json={"name": "Plano", "type": "select", "options": ["basic", "pro"], "required": True},
        headers=owner["headers"],
    ).json()
    lead = create_lead(client, owner, phone="11987654321").json()
    url = f"/api/v1/leads/{lead['id']}/custom-fields"

    saved = client.put(url, json={"values": [{"field_id": plan["id"], "value": "pro"}]}, headers=owner["headers"])
    assert saved.status_code == 200
    assert saved.json() == [{"field_id": plan["id"], "value": "pro"}]

    invalid = client.put(url, json={"values": [{"field_id": plan["id"], "value": "gold"}]}, headers=owner["headers"])
    assert invalid.status_code == 400
    empty = client.put(url, json={"values": [{"field_id": plan["id"], "value": ""}]}, headers=owner["headers"])
    assert empty.status_code == 400
    unknown = client.put(url, json={"values": [{"field_id": "nope", "value": 1}]}, headers=owner["headers"])
    assert unknown.status_code == 400

    assert client.get(url, headers=owner["headers"]).json() == [{"field_id": plan["id"], "value": "pro"}]


def test_delete_lead_cascades(client, db, owner):
    lead = create_lead(client, owner, phone="11987654321").json()
    tag = client.post("/api/v1/tags", json={"name": "VIP", "color": "#f00"}, headers=owner["headers"]).json()
    client.put(f"/api/v1/leads/{lead['id']}", json={"label_ids": [tag["id"]]}, headers=owner["headers"])
    conversation = client.post(
        "/api/v1/conversations", json={"lead_id": lead["id"]}, headers=owner["headers"]
    ).json()
    db.seed("messages", conversation_id=conversation["id"], content="oi", sender="user", read=False)

    response = client.delete(f"/api/v1/leads/{lead['id']}", headers=owner["headers"])
    assert response.status_code == 204
    assert db.rows("leads") == []
    assert db.rows("conversations") == []
    assert db.rows("messages") == []
    assert db.rows("lead_tags") == []
    assert len(db.rows("tags")) == 1
