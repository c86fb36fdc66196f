import pytest

from app.modules.agents.service import assistant_params, build_assistant_instructions
from tests.conftest import VALID_OPENAI_KEY


@pytest.fixture
def configured(client, owner):
    response = client.post(
        "/api/v1/integrations/openai/key", json={"api_key": VALID_OPENAI_KEY}, headers=owner["headers"]
    )
    assert response.status_code == 200
    return owner


def test_instructions_include_profile_sections():
    text = build_assistant_instructions({
        "name": "Navi",
        "description": "Atendente virtual",
        "company_name": "ACME",
        "product_info": "Planos mensais",
    })
    assert text.startswith("# Navi\nAtendente virtual")
    assert "Nome: ACME" in text
    assert "## Tom de Voz\nProfissional e amigável" in text
    assert "## Informações do Produto\nPlanos mensais" in text


def test_assistant_params_attach_vector_store():
    plain = assistant_params({"name": "Navi", "model": "gpt-4o"})
    assert plain["tools"] == []
    assert "tool_resources" not in plain

    with_store = assistant_params({"name": "Navi", "vector_store_id": "vs_1", "temperature": 0.2})
    assert with_store["tools"] == [{"type": "file_search"}]
    assert with_store["tool_resources"] == {"file_search": {"vector_store_ids": ["vs_1"]}}
    assert with_store["temperature"] == 0.2


def test_invalid_openai_key_is_rejected(client, db, owner):
    response = client.post("/api/v1/integrations/openai/key", json={"api_key": "sk-bad"}, headers=owner["headers"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid API key"
    assert db.rows("system_configs") == []


def test_openai_key_status_lifecycle(client, configured):
    headers = configured["headers"]
    assert client.get("/api/v1/integrations/openai/key", headers=headers).json() == {"configured": True}
    client.post("/api/v1/integrations/openai/key", json={"api_key": VALID_OPENAI_KEY}, headers=headers)
    assert client.delete("/api/v1/integrations/openai/key", headers=headers).json() == {"configured": False}
    assert client.get("/api/v1/integrations/openai/key", headers=headers).json() == {"configured": False}


def test_openai_key_is_per_workspace(client, configured, other_owner):
    response = client.get("/api/v1/integrations/openai/key", headers=other_owner["headers"])
    assert response.json() == {"configured": False}


def test_create_agent_with_defaults(client, owner):
    response = client.post("/api/v1/agents", json={"name": "Navi"}, headers=owner["headers"])
    assert response.status_code == 201
    body = response.json()
    assert body["model"] == "gpt-4-turbo"
    assert body["image_url"] == "/images/avatar/avatar.png"
    assert body["assistant_id"] is None


def test_create_agent_rejects_unknown_model(client, owner):
    response = client.post("/api/v1/agents", json={"name": "Navi", "model": "gpt-2"}, headers=owner["headers"])
    assert response.status_code == 400


def test_create_assistant_without_key_stores_nothing(client, db, owner):
    response = client.post(
        "/api/v1/agents", json={"name": "Navi", "create_assistant": True}, headers=owner["headers"]
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "OpenAI API key not configured"
    assert db.rows("agents") == []


def test_create_agent_with_assistant(client, configured, openai_factory):
    response = client.post(
        "/api/v1/agents",
        json={"name": "Navi", "company_name": "ACME", "create_assistant": True},
        headers=configured["headers"],
    )
    assert response.status_code == 201
    assistant_id = response.json()["assistant_id"]
    assistant = openai_factory.state["assistants"][assistant_id]
    assert assistant["name"] == "Navi"
    assert "Nome: ACME" in assistant["instructions"]


def test_update_agent_syncs_assistant(client, configured, openai_factory):
    agent = client.post(
        "/api/v1/agents", json={"name": "Navi", "create_assistant": True}, headers=configured["headers"]
    ).json()
    response = client.put(
        f"/api/v1/agents/{agent['id']}", json={"name": "Navi 2", "model": "gpt-4o"}, headers=configured["headers"]
    )
    assert response.status_code == 200
    assistant = openai_factory.state["assistants"][agent["assistant_id"]]
    assert assistant["name"] == "Navi 2"
    assert assistant["model"] == "gpt-4o"


def test_list_and_delete_assistants(client, configured, openai_factory):
    headers = configured["headers"]
    agent = client.post("/api/v1/agents", json={"name": "Navi"}, headers=headers).json()
    created = client.post("/api/v1/agents/openai-assistants", json={"agent_id": agent["id"]}, headers=headers)
    assert created.status_code == 201
    assistant_id = created.json()["assistant_id"]

    listed = client.get("/api/v1/agents/openai-assistants", headers=headers).json()
    assert [(a["id"], a["agent_name"]) for a in listed] == [(assistant_id, "Navi")]

    # Assistants deleted at the provider are skipped
    del openai_factory.state["assistants"][assistant_id]
    assert client.get("/api/v1/agents/openai-assistants", headers=headers).json() == []


def test_delete_assistant_detaches_agent(client, configured, openai_factory):
    headers = configured["headers"]
    agent = client.post("/api/v1/agents", json={"name": "Navi", "create_assistant": True}, headers=headers).json()
    response = client.delete(f"/api/v1/agents/openai-assistants/{agent['assistant_id']}", headers=headers)
    assert response.status_code == 204
    assert openai_factory.state["assistants"] == {}
    assert client.get(f"/api/v1/agents/{agent['id']}", headers=headers).json()["assistant_id"] is None


def test_foreign_assistant_is_not_found(client, configured, other_owner):
    agent = client.post(
        "/api/v1/agents", json={"name": "Navi", "create_assistant": True}, headers=configured["headers"]
    ).json()
    response = client.delete(
        f"/api/v1/agents/openai-assistants/{agent['assistant_id']}", headers=other_owner["headers"]
    )
    assert response.status_code == 404


def test_delete_agent_cleans_up(client, db, configured, openai_factory):
    headers = configured["headers"]
    agent = client.post("/api/v1/agents", json={"name": "Navi", "create_assistant": True}, headers=headers).json()
    lead = client.post("/api/v1/leads", json={"phone": "11987654321"}, headers=headers).json()
    conversation = client.post(
        "/api/v1/conversations", json={"lead_id": lead["id"], "agent_id": agent["id"]}, headers=headers
    ).json()
    db.seed("dispara_ja_connections", workspace_id=configured["workspace_id"], agent_id=agent["id"], secret="s")

    assert client.delete(f"/api/v1/agents/{agent['id']}", headers=headers).status_code == 204
    assert db.rows("agents") == []
    assert db.rows("dispara_ja_connections") == []
    assert openai_factory.state["assistants"] == {}
    stored = client.get(f"/api/v1/conversations/{conversation['id']}", headers=headers).json()
    assert stored["agent_id"] is None


def test_plain_user_cannot_create_agents(client, owner, make_user):
    member = make_user("user", owner["workspace_id"])
    assert client.get("/api/v1/agents", headers=member["headers"]).status_code == 200
    assert client.post("/api/v1/agents", json={"name": "Navi"}, headers=member["headers"]).status_code == 403


def upload(client, user, name="manual.pdf", content=b"%PDF-1.4 data"):
    return client.post("/api/v1/files", files={"file": (name, content, "application/pdf")}, headers=user["headers"])


def test_upload_and_delete_file(client, db, configured, openai_factory):
    response = upload(client, configured)
    assert response.status_code == 201
    body = response.json()
    assert body["filename"] == "manual.pdf"
    assert body["openai_id"] in openai_factory.state["files"]

    listed = client.get("/api/v1/files", headers=configured["headers"]).json()
    assert [f["openai_id"] for f in listed] == [body["openai_id"]]

    assert client.delete(f"/api/v1/files/{body['openai_id']}", headers=configured["headers"]).status_code == 204
    assert db.rows("files") == []
    assert openai_factory.state["files"] == {}


def test_empty_upload_is_rejected(client, configured):
    assert upload(client, configured, content=b"").status_code == 400


def test_vector_store_lifecycle(client, db, configured, openai_factory):
    headers = configured["headers"]
    first = upload(client, configured, "a.pdf").json()["openai_id"]
    second = upload(client, configured, "b.pdf").json()["openai_id"]

    created = client.post("/api/v1/vector-stores", json={"name": "Base", "file_ids": [first]}, headers=headers)
    assert created.status_code == 201
    store = created.json()
    assert [f["filename"] for f in store["files"]] == ["a.pdf"]

    added = client.post(f"/api/v1/vector-stores/{store['openai_id']}/files", json={"file_id": second}, headers=headers)
    assert added.status_code == 201
    files = client.get(f"/api/v1/vector-stores/{store['id']}/files", headers=headers).json()
    assert {f["filename"] for f in files} == {"a.pdf", "b.pdf"}

    removed = client.delete(f"/api/v1/vector-stores/{store['openai_id']}/files/{first}", headers=headers)
    assert removed.status_code == 204
    files = client.get(f"/api/v1/vector-stores/{store['openai_id']}/files", headers=headers).json()
    assert [f["filename"] for f in files] == ["b.pdf"]

    agent = client.post(
        "/api/v1/agents", json={"name": "Navi", "vector_store_id": store["openai_id"]}, headers=headers
    ).json()
    assert client.delete(f"/api/v1/vector-stores/{store['openai_id']}", headers=headers).status_code == 204
    assert db.rows("vector_stores") == []
    assert client.get(f"/api/v1/agents/{agent['id']}", headers=headers).json()["vector_store_id"] is None


def test_vector_store_requires_known_files(client, configured):
    headers = configured["headers"]
    empty = client.post("/api/v1/vector-stores", json={"name": "Base", "file_ids": []}, headers=headers)
    assert empty.status_code == 400
    unknown = client.post("/api/v1/vector-stores", json={"name": "Base", "file_ids": ["file_x"]}, headers=headers)
    assert unknown.status_code == 400


def test_agent_rejects_foreign_vector_store(client, configured, other_owner):
    upload_id = upload(client, configured).json()["openai_id"]
    store = client.post(
        "/api/v1/vector-stores", json={"name": "Base", "file_ids": [upload_id]}, headers=configured["headers"]
    ).json()
    response = client.post(
        "/api/v1/agents", json={"name": "Navi", "vector_store_id": store["openai_id"]}, headers=other_owner["headers"]
    )
    assert response.status_code == 404
