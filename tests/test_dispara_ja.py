import pytest

from app.integrations.dispara_ja_client import format_recipient, split_message_into_blocks
from app.modules.leads.phone import add_country_mobile_nine


def test_short_message_is_one_block():
    assert split_message_into_blocks("Olá") == ["Olá"]


def test_blocks_break_on_lines():
    lines = ["a" * 600, "b" * 600, "c" * 100]
    blocks = split_message_into_blocks("\n".join(lines))
    assert blocks == ["a" * 600, "b" * 600 + "\n" + "c" * 100]
    assert all(len(b) <= 1000 for b in blocks)


def test_long_line_is_cut():
    blocks = split_message_into_blocks("x" * 2500)
    assert [len(b) for b in blocks] == [1000, 1000, 500]


def test_format_recipient():
    assert format_recipient("5511987654321") == "+5511987654321"
    assert format_recipient("+5511987654321") == "+5511987654321"


@pytest.fixture
def agent(db, owner):
    return db.seed("agents", workspace_id=owner["workspace_id"], name="Navi")


def connect(client, owner, agent, **payload):
    return client.post(
        "/api/v1/dispara-ja/connect",
        json={"secret": "s3cr3t", "agent_id": agent["id"], **payload},
        headers=owner["headers"],
    )


def test_connect_creates_then_updates(client, db, owner, agent):
    created = connect(client, owner, agent)
    assert created.status_code == 200
    assert created.json()["message"] == "Connection created"
    row = db.rows("dispara_ja_connections")[0]
    assert row["status"] == "pendente"
    assert row["sid"] == "3"

    updated = connect(client, owner, agent, phone_number="5511987654321")
    assert updated.json() == {
        "success": True, "connection_id": row["id"], "message": "Connection updated",
    }
    assert db.rows("dispara_ja_connections")[0]["status"] == "ativo"

    duplicate = connect(client, owner, agent, phone_number="5511987654321")
    assert duplicate.status_code == 409


def test_connect_requires_own_agent(client, owner, other_owner, agent):
    assert connect(client, other_owner, agent).status_code == 404


def test_list_connections_includes_agent_name(client, owner, other_owner, agent):
    connect(client, owner, agent)
    listed = client.get("/api/v1/dispara-ja/connections", headers=owner["headers"]).json()
    assert [c["agent_name"] for c in listed] == ["Navi"]
    assert "secret" not in listed[0]
    assert client.get("/api/v1/dispara-ja/connections", headers=other_owner["headers"]).json() == []


def test_update_and_delete_connection(client, db, owner, agent):
    connection_id = connect(client, owner, agent).json()["connection_id"]
    client.post(
        "/api/v1/dispara-ja/log",
        json={"connection_id": connection_id, "message": "QR lido"},
        headers=owner["headers"],
    )
    updated = client.put(
        f"/api/v1/dispara-ja/connections/{connection_id}", json={"status": "inativo"}, headers=owner["headers"]
    )
    assert updated.json()["status"] == "inativo"

    assert client.delete(f"/api/v1/dispara-ja/connections/{connection_id}", headers=owner["headers"]).status_code == 204
    assert db.rows("dispara_ja_connections") == []
    assert db.rows("dispara_ja_logs") == []


def test_update_status_batch_reports_per_item(client, db, owner, other_owner, agent):
    connection_id = connect(client, owner, agent).json()["connection_id"]
    response = client.post(
        "/api/v1/dispara-ja/update-status",
        json={"connections": [
            {"id": connection_id, "status": "ativo", "phone_number": "5511987654321"},
            {"id": "missing", "status": "ativo"},
        ]},
        headers=owner["headers"],
    )
    assert response.json()["results"] == [
        {"id": connection_id, "success": True, "error": None},
        {"id": "missing", "success": False, "error": "Connection not found"},
    ]
    assert db.rows("dispara_ja_connections")[0]["phone_number"] == "5511987654321"

    foreign = client.post(
        "/api/v1/dispara-ja/update-status",
        json={"connections": [{"id": connection_id, "status": "inativo"}]},
        headers=other_owner["headers"],
    )
    assert foreign.json()["results"][0]["success"] is False


def test_qrcode_resets_account(client, owner, dispara_ja):
    response = client.post("/api/v1/dispara-ja/qrcode", json={"secret": "s3cr3t"}, headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["qr_image_link"] == "https://disparaja.test/qr/s3cr3t.png"
    assert dispara_ja.deleted_accounts == ["s3cr3t"]


def verify(client, owner, agent):
    return client.get(
        "/api/v1/dispara-ja/verify-connection",
        params={"info_link": "https://disparaja.test/api/info/s3cr3t", "secret": "s3cr3t", "agent_id": agent["id"]},
        headers=owner["headers"],
    )


def test_verify_connection_pending(client, db, owner, agent):
    response = verify(client, owner, agent)
    assert response.json()["connected"] is False
    assert db.rows("dispara_ja_connections") == []


def test_verify_connection_stores_paired_number(client, db, owner, agent, dispara_ja):
    dispara_ja.info = {
        "status": 200,
        "message": "WhatsApp Information",
        "data": {"wid": "5511987654321@s.whatsapp.net", "unique": "acct-9"},
    }
    response = verify(client, owner, agent)
    body = response.json()
    assert body["connected"] is True
    assert body["phone_number"] == "5511987654321"
    row = db.rows("dispara_ja_connections")[0]
    assert (row["status"], row["unique"], row["agent_id"]) == ("ativo", "acct-9", agent["id"])

    verify(client, owner, agent)
    assert len(db.rows("dispara_ja_connections")) == 1


def test_plain_user_cannot_connect(client, owner, make_user, agent):
    member = make_user("user", owner["workspace_id"])
    assert connect(client, member, agent).status_code == 403


def test_add_country_mobile_nine():
    assert add_country_mobile_nine("+551187654321") == "5511987654321"
    assert add_country_mobile_nine("5511987654321") == "5511987654321"


@pytest.fixture
def paired(db, owner, agent):
    return db.seed(
        "dispara_ja_connections", workspace_id=owner["workspace_id"], agent_id=agent["id"],
        secret="s3cr3t", unique="acct-1", status="ativo",
    )


def post_event(client, connection, **fields):
    form = {
        "secret": "s3cr3t",
        "type": "whatsapp",
        "data[phone]": "+551187654321",
        "data[message]": "Olá, tudo bem?",
        "data[attachment]": "0",
        **fields,
    }
    return client.post(f"/webhook/dispara-ja/{connection['id']}", data=form)


def test_webhook_stores_inbound_message(client, db, owner, agent, paired):
    response = post_event(client, paired)
    assert response.status_code == 200
    assert response.json()["stored"] is True

    lead = db.rows("leads")[0]
    assert (lead["workspace_id"], lead["phone"], lead["source"]) == (owner["workspace_id"], "5511987654321", "dispara_ja")
    conversation = db.rows("conversations")[0]
    assert (conversation["agent_id"], conversation["channel"]) == (agent["id"], "dispara_ja")
    message = db.rows("messages")[0]
    assert (message["content"], message["sender"], message["read"]) == ("Olá, tudo bem?", "user", False)
    assert db.rows("dispara_ja_logs")[0]["type"] == "webhook"


def test_webhook_attachment_metadata(client, db, paired):
    post_event(client, paired, **{"data[message]": "", "data[attachment]": "https://cdn.test/a.ogg"})
    message = db.rows("messages")[0]
    assert message["content"] == "https://cdn.test/a.ogg"
    assert message["metadata"] == {"attachment": "https://cdn.test/a.ogg", "media_type": "audio"}


def test_webhook_rejects_wrong_secret(client, db, paired):
    response = post_event(client, paired, secret="guess")
    assert response.status_code == 403
    assert db.rows("messages") == []


def test_webhook_ignores_other_events(client, db, paired):
    response = post_event(client, paired, type="ussd")
    assert response.json()["stored"] is False
    assert db.rows("messages") == []
    assert len(db.rows("dispara_ja_logs")) == 1


def test_webhook_unknown_connection(client):
    assert client.get("/webhook/dispara-ja/missing").status_code == 404
    assert client.post("/webhook/dispara-ja/missing", json={"secret": "x"}).status_code == 404


def test_webhook_check(client, paired):
    response = client.get(f"/webhook/dispara-ja/{paired['id']}")
    assert response.json() == {"connection_id": paired["id"], "status": "ativo"}
