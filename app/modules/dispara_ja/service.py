import hmac
import logging
import uuid
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import find_owned, get_owned_or_404
from app.integrations.dispara_ja_client import DisparaJaClient, DEFAULT_SID
from app.modules.conversations.service import ConversationService
from app.modules.dispara_ja.schemas import (
    ConnectRequest, ConnectResponse, ConnectionResponse, ConnectionUpdate,
    LogRequest, QRCodeResponse, StatusItem, StatusItemResult, StatusBatchResponse,
    VerifyConnectionResponse, WebhookResult, WebhookCheckResponse
)
from app.modules.leads.phone import add_country_mobile_nine

logger = logging.getLogger(__name__)

TABLE = "dispara_ja_connections"
PROVIDER = "DISPARA_JA"
CONNECTED_MESSAGE = "WhatsApp Information"
CHANNEL = "dispara_ja"
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")
AUDIO_EXTENSIONS = ("mp3", "wav", "ogg", "oga", "mp4", "m4a")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def webhook_field(payload: Dict[str, Any], name: str) -> str:
    """Read `data[name]` from a form post, or data.name from a JSON body"""
    if f"data[{name}]" in payload:
        return str(payload[f"data[{name}]"] or "")
    nested = payload.get("data")
    if isinstance(nested, dict):
        return str(nested.get(name) or "")
    return ""


def attachment_type(url: str) -> str:
    extension = url.rsplit(".", 1)[-1].lower() if "." in url else ""
    if extension in IMAGE_EXTENSIONS:
        return "image"
    if extension in AUDIO_EXTENSIONS:
        return "audio"
    return "file"


class DisparaJaService:
    def __init__(self, supabase: Client, client: DisparaJaClient):
        self.supabase = supabase
        self.client = client

    def _get_connection_row(self, connection_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, TABLE, connection_id, workspace_id, detail="Connection not found")

    def _get_agent(self, agent_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "agents", agent_id, workspace_id, detail="Agent not found")

    def _agent_connection(self, agent_id: str, workspace_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(TABLE)\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .eq("agent_id", agent_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def connect(self, data: ConnectRequest, workspace_id: str) -> ConnectResponse:
        """Create or refresh the connection of an agent"""
        self._get_agent(data.agent_id, workspace_id)
        existing = self._agent_connection(data.agent_id, workspace_id)
        if existing and data.phone_number and existing.get("phone_number") == data.phone_number:
            raise HTTPException(status_code=409, detail="A connection with this number already exists for this agent")

        values = {
            "provider": PROVIDER,
            "secret": data.secret,
            "sid": data.sid or DEFAULT_SID,
            "token": data.token or "",
            "phone_number": data.phone_number or "",
            "unique": data.unique or str(uuid.uuid4()),
            "status": "ativo" if data.phone_number else "pendente",
        }
        if existing:
            values["updated_at"] = _now()
            self.supabase.table(TABLE)\
                .update(values)\
                .eq("id", existing["id"])\
                .eq("workspace_id", workspace_id)\
                .execute()
            logger.info(f"Dispara-Já connection {existing['id']} updated for agent {data.agent_id}")
            return ConnectResponse(connection_id=existing["id"], message="Connection updated")

        values.update({"workspace_id": workspace_id, "agent_id": data.agent_id})
        result = self.supabase.table(TABLE).insert(values).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create connection")
        logger.info(f"Dispara-Já connection created for agent {data.agent_id}")
        return ConnectResponse(connection_id=result.data[0]["id"], message="Connection created")

    def list_connections(self, workspace_id: str) -> List[ConnectionResponse]:
        rows = self.supabase.table(TABLE)\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        agent_ids = list({r["agent_id"] for r in rows if r.get("agent_id")})
        names: Dict[str, str] = {}
        if agent_ids:
            agents = self.supabase.table("agents")\
                .select("id, name")\
                .eq("workspace_id", workspace_id)\
                .in_("id", agent_ids)\
                .execute().data or []
            names = {a["id"]: a["name"] for a in agents}
        return [ConnectionResponse(**row, agent_name=names.get(row.get("agent_id"))) for row in rows]

    def update_connection(self, connection_id: str, data: ConnectionUpdate, workspace_id: str) -> ConnectionResponse:
        self._get_connection_row(connection_id, workspace_id)
        update_data = data.model_dump(exclude_unset=True)
        update_data["updated_at"] = _now()
        result = self.supabase.table(TABLE)\
            .update(update_data)\
            .eq("id", connection_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return ConnectionResponse(**result.data[0])

    def delete_connection(self, connection_id: str, workspace_id: str) -> bool:
        self._get_connection_row(connection_id, workspace_id)
        self.supabase.table("dispara_ja_logs").delete().eq("connection_id", connection_id).execute()
        result = self.supabase.table(TABLE)\
            .delete()\
            .eq("id", connection_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0

    def add_log(self, data: LogRequest, workspace_id: str) -> Dict[str, Any]:
        self._get_connection_row(data.connection_id, workspace_id)
        result = self.supabase.table("dispara_ja_logs").insert({
            "connection_id": data.connection_id,
            "message": data.message,
            "type": data.type,
        }).execute()
        return result.data[0]

    def generate_qrcode(self, secret: str, sid: Optional[str] = None) -> QRCodeResponse:
        """Reset the provider account bound to the secret and request a new QR code"""
        self.client.delete_account(secret)
        payload = self.client.create_link(secret, sid or DEFAULT_SID)
        data = payload["data"]
        return QRCodeResponse(qr_image_link=data["qrimagelink"], info_link=data["infolink"], data=data)

    def update_statuses(self, items: List[StatusItem], workspace_id: str) -> StatusBatchResponse:
        results = []
        for item in items:
            if not find_owned(self.supabase, TABLE, item.id, workspace_id, columns="id"):
                results.append(StatusItemResult(id=item.id, success=False, error="Connection not found"))
                continue
            update_data = {"status": item.status, "updated_at": _now()}
            if item.phone_number is not None:
                update_data["phone_number"] = item.phone_number
            self.supabase.table(TABLE)\
                .update(update_data)\
                .eq("id", item.id)\
                .eq("workspace_id", workspace_id)\
                .execute()
            results.append(StatusItemResult(id=item.id, success=True))
        return StatusBatchResponse(results=results)

    def verify_connection(self, info_link: str, secret: str, sid: str, agent_id: str,
                          workspace_id: str) -> VerifyConnectionResponse:
        """Poll the QR code info link; once paired, store the connection of the agent"""
        self._get_agent(agent_id, workspace_id)
        info = self.client.get_info(info_link)
        if not isinstance(info, dict):
            info = {}
        data = info.get("data")
        if info.get("status") != 200 or info.get("message") != CONNECTED_MESSAGE \
                or not data or not data.get("wid") or not data.get("unique"):
            return VerifyConnectionResponse(connected=False, status="pendente")

        phone_number = str(data["wid"]).replace("@s.whatsapp.net", "")
        values = {
            "provider": PROVIDER,
            "secret": secret,
            "token": secret,
            "sid": sid or DEFAULT_SID,
            "phone_number": phone_number,
            "unique": data["unique"],
            "status": "ativo",
        }
        existing = self._agent_connection(agent_id, workspace_id)
        if existing:
            values["updated_at"] = _now()
            self.supabase.table(TABLE)\
                .update(values)\
                .eq("id", existing["id"])\
                .eq("workspace_id", workspace_id)\
                .execute()
            connection_id = existing["id"]
        else:
            values.update({"workspace_id": workspace_id, "agent_id": agent_id})
            connection_id = self.supabase.table(TABLE).insert(values).execute().data[0]["id"]
        logger.info(f"Dispara-Já connection {connection_id} paired")
        return VerifyConnectionResponse(
            connected=True, status="ativo", connection_id=connection_id, phone_number=phone_number
        )

    # Public webhook

    def _connection_by_id(self, connection_id: str) -> Dict[str, Any]:
        result = self.supabase.table(TABLE)\
            .select("*")\
            .eq("id", connection_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Connection not found")
        return result.data[0]

    def check_webhook(self, connection_id: str) -> WebhookCheckResponse:
        connection = self._connection_by_id(connection_id)
        return WebhookCheckResponse(connection_id=connection["id"], status=connection["status"])

    def ingest(self, connection_id: str, payload: Dict[str, Any]) -> WebhookResult:
        """Log the event and store inbound WhatsApp messages in the connection's workspace"""
        connection = self._connection_by_id(connection_id)
        if not hmac.compare_digest(str(payload.get("secret") or ""), connection["secret"] or ""):
            logger.warning(f"Dispara-Já webhook for connection {connection_id} with a wrong secret")
            raise HTTPException(status_code=403, detail="Invalid secret")

        event_type = payload.get("type")
        self.supabase.table("dispara_ja_logs").insert({
            "connection_id": connection_id,
            "message": f"Webhook received: type={event_type}",
            "type": "webhook",
        }).execute()
        if event_type != "whatsapp":
            return WebhookResult()

        phone = add_country_mobile_nine(webhook_field(payload, "phone"))
        if not phone:
            raise HTTPException(status_code=400, detail="Sender phone is required")
        text = webhook_field(payload, "message")
        attachment = webhook_field(payload, "attachment")
        metadata: Dict[str, Any] = {}
        if attachment and attachment != "0":
            metadata = {"attachment": attachment, "media_type": attachment_type(attachment)}
        content = text or metadata.get("attachment")
        if not content:
            return WebhookResult()

        message = ConversationService(self.supabase).record_inbound(
            connection["workspace_id"], phone, content, CHANNEL,
            agent_id=connection["agent_id"], metadata=metadata or None,
        )
        return WebhookResult(stored=True, message_id=message["id"])
