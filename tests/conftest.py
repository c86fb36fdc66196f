import os

# Settings are read at import time
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["BASE_URL"] = "https://api.navibot.test"
os.environ["PUBLIC_URL"] = "https://app.navibot.test"
os.environ["WHATSAPP_VERIFY_TOKEN"] = "verify-me"

import itertools
from typing import Any, Dict, List, Optional

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.core.security import create_access_token, get_password_hash
from app.integrations.dispara_ja_client import DisparaJaClient, get_dispara_ja_client
from app.integrations.mailer import Mailer, get_mailer
from app.integrations.openai_client import OpenAIClientFactory, get_openai_factory
from app.integrations.whatsapp_cloud_client import WhatsAppCloudClient, get_whatsapp_cloud_client
from app.main import app
from app.scripts.seed_permissions import seed_permissions
from tests.fake_supabase import FakeSupabase

VALID_OPENAI_KEY = "sk-valid"


class RecordingMailer(Mailer):
    """Captures outgoing emails and the raw tokens they carry."""

    def __init__(self):
        super().__init__(enabled=False)
        self.sent: List[Dict[str, Any]] = []

    def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def send_verification_email(self, email: str, token: str) -> bool:
        self.sent.append({"to": email, "kind": "verification", "token": token})
        return True

    def send_invitation_email(self, email: str, token: str, user_name=None, admin_name=None, workspace_name=None) -> bool:
        self.sent.append({"to": email, "kind": "invitation", "token": token})
        return True

    def send_password_reset_email(self, email: str, token: str) -> bool:
        self.sent.append({"to": email, "kind": "password_reset", "token": token})
        return True

    def last_token(self, kind: str, email: str) -> Optional[str]:
        for item in reversed(self.sent):
            if item.get("kind") == kind and item["to"] == email:
                return item["token"]
        return None


class FakeGateway:
    """Keeps assistants, files and vector stores in memory, keyed like the OpenAI API."""

    _ids = itertools.count(1)

    def __init__(self, state: Dict[str, Dict[str, Any]], api_key: str):
        self.state = state
        self.api_key = api_key

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def _get(self, kind: str, obj_id: str) -> Dict[str, Any]:
        if obj_id not in self.state[kind]:
            raise HTTPException(status_code=404, detail=f"OpenAI resource not found ({kind})")
        return self.state[kind][obj_id]

    def validate_key(self) -> bool:
        if self.api_key != VALID_OPENAI_KEY:
            raise HTTPException(status_code=400, detail="Invalid OpenAI API key")
        return True

    def create_assistant(self, **params) -> Dict[str, Any]:
        assistant = {"id": self._new_id("asst"), **params}
        self.state["assistants"][assistant["id"]] = assistant
        return assistant

    def update_assistant(self, assistant_id: str, **params) -> Dict[str, Any]:
        self._get("assistants", assistant_id).update(params)
        return self.state["assistants"][assistant_id]

    def retrieve_assistant(self, assistant_id: str) -> Dict[str, Any]:
        return self._get("assistants", assistant_id)

    def delete_assistant(self, assistant_id: str) -> bool:
        self._get("assistants", assistant_id)
        del self.state["assistants"][assistant_id]
        return True

    def upload_file(self, filename: str, content: bytes, purpose: str = "assistants") -> Dict[str, Any]:
        uploaded = {"id": self._new_id("file"), "filename": filename, "bytes": len(content), "purpose": purpose}
        self.state["files"][uploaded["id"]] = uploaded
        return uploaded

    def delete_file(self, file_id: str) -> bool:
        self._get("files", file_id)
        del self.state["files"][file_id]
        return True

    def create_vector_store(self, name: str, file_ids: List[str]) -> Dict[str, Any]:
        store = {
            "id": self._new_id("vs"), "name": name, "status": "completed",
            "file_ids": list(file_ids), "file_counts": {"completed": len(file_ids)},
        }
        self.state["vector_stores"][store["id"]] = store
        return store

    def retrieve_vector_store(self, vector_store_id: str) -> Dict[str, Any]:
        return self._get("vector_stores", vector_store_id)

    def delete_vector_store(self, vector_store_id: str) -> bool:
        self._get("vector_stores", vector_store_id)
        del self.state["vector_stores"][vector_store_id]
        return True

    def list_vector_store_files(self, vector_store_id: str) -> List[Dict[str, Any]]:
        store = self._get("vector_stores", vector_store_id)
        return [{"id": fid, "status": "completed"} for fid in store["file_ids"]]

    def add_vector_store_file(self, vector_store_id: str, file_id: str) -> Dict[str, Any]:
        store = self._get("vector_stores", vector_store_id)
        if file_id not in store["file_ids"]:
            store["file_ids"].append(file_id)
        return {"id": file_id, "status": "completed"}

    def delete_vector_store_file(self, vector_store_id: str, file_id: str) -> bool:
        store = self._get("vector_stores", vector_store_id)
        if file_id not in store["file_ids"]:
            raise HTTPException(status_code=404, detail="OpenAI resource not found (vector store file)")
        store["file_ids"].remove(file_id)
        return True


class FakeOpenAIFactory(OpenAIClientFactory):
    def __init__(self):
        self.state: Dict[str, Dict[str, Any]] = {"assistants": {}, "files": {}, "vector_stores": {}}

    def from_key(self, api_key: str) -> FakeGateway:
        return FakeGateway(self.state, api_key)


class FakeDisparaJa(DisparaJaClient):
    def __init__(self):
        super().__init__(base_url="https://disparaja.test/api", block_delay=0)
        self.sent: List[Dict[str, Any]] = []
        self.deleted_accounts: List[str] = []
        self.info: Dict[str, Any] = {"status": 200, "message": "Waiting"}
        self.fail_send = False

    def delete_account(self, secret: str) -> None:
        self.deleted_accounts.append(secret)

    def create_link(self, secret: str, sid: str = "3") -> Dict[str, Any]:
        return {"data": {
            "qrimagelink": f"https://disparaja.test/qr/{secret}.png",
            "infolink": f"https://disparaja.test/api/info/{secret}",
        }}

    def get_info(self, info_link: str) -> Dict[str, Any]:
        return self.info

    def send_text(self, secret: str, account: str, recipient: str, message: str) -> int:
        if self.fail_send:
            raise HTTPException(status_code=502, detail="Failed to send message through Dispara-Já")
        self.sent.append({"secret": secret, "account": account, "recipient": recipient, "message": message})
        return 1


class FakeWhatsAppCloud(WhatsAppCloudClient):
    def __init__(self):
        super().__init__(graph_url="https://graph.test/v17.0")
        self.sent: List[Dict[str, Any]] = []

    def send_text(self, phone_number_id: str, access_token: str, to: str, body: str) -> Dict[str, Any]:
        self.sent.append({"phone_number_id": phone_number_id, "to": to, "body": body})
        return {"messages": [{"id": "wamid.out"}]}


@pytest.fixture
def db():
    fake = FakeSupabase()
    seed_permissions(fake)
    return fake


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def openai_factory():
    return FakeOpenAIFactory()


@pytest.fixture
def dispara_ja():
    return FakeDisparaJa()


@pytest.fixture
def whatsapp_cloud():
    return FakeWhatsAppCloud()


@pytest.fixture
def client(db, mailer, openai_factory, dispara_ja, whatsapp_cloud):
    app.state.supabase = db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_openai_factory] = lambda: openai_factory
    app.dependency_overrides[get_dispara_ja_client] = lambda: dispara_ja
    app.dependency_overrides[get_whatsapp_cloud_client] = lambda: whatsapp_cloud
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.supabase = None


def auth_headers(user: Dict[str, Any]) -> Dict[str, str]:
    token = create_access_token(user["id"], user["workspace_id"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db):
    """Insert an active user; creates the workspace when none is given."""
    counter = itertools.count(1)

    def _make(role: str = "owner", workspace_id: Optional[str] = None, **values) -> Dict[str, Any]:
        n = next(counter)
        if workspace_id is None:
            workspace_id = db.seed("workspaces", name=f"Workspace {n}", subdomain=f"ws{n}")["id"]
        user = db.seed(
            "users",
            workspace_id=workspace_id,
            email=values.pop("email", f"user{n}@navibot.com"),
            name=values.pop("name", f"User {n}"),
            password_hash=get_password_hash(values.pop("password", "secret123")),
            role=role,
            status=values.pop("status", "active"),
            **values,
        )
        user["headers"] = auth_headers(user)
        return user

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def other_owner(make_user):
    """Owner of a second, unrelated workspace"""
    return make_user("owner")
