import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.workspace_guard import get_owned_or_404
from app.modules.conversations.service import ConversationService
from app.modules.leads.phone import format_phone_number
from app.modules.whatsapp_cloud.schemas import (
    WhatsAppCloudCreate, WhatsAppCloudResponse, WebhookResult
)

logger = logging.getLogger(__name__)

TABLE = "whatsapp_cloud_connections"
CHANNEL = "whatsapp_cloud"


def webhook_url_for(phone_number_id: str) -> str:
    if not settings.base_url:
        raise HTTPException(status_code=500, detail="BASE_URL is not configured")
    return f"{settings.base_url.rstrip('/')}/webhook/whatsapp-cloud/{phone_number_id}"


def extract_text_messages(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a Graph webhook payload into [{from, name, body, wamid, phone_number_id}]"""
    messages = []
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value") or {}
            metadata = value.get("metadata") or {}
            names = {
                c.get("wa_id"): (c.get("profile") or {}).get("name")
                for c in value.get("contacts") or []
            }
            for message in value.get("messages") or []:
                if message.get("type") != "text":
                    continue
                body = (message.get("text") or {}).get("body")
                if not body or not message.get("from"):
                    continue
                messages.append({
                    "from": message["from"],
                    "name": names.get(message["from"]),
                    "body": body,
                    "wamid": message.get("id"),
                    "phone_number_id": metadata.get("phone_number_id"),
                })
    return messages


class WhatsAppCloudService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_connection_row(self, connection_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, TABLE, connection_id, workspace_id, detail="Connection not found")

    def list_connections(self, workspace_id: str) -> List[WhatsAppCloudResponse]:
        rows = self.supabase.table(TABLE)\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        names: Dict[str, str] = {}
        agent_ids = list({r["agent_id"] for r in rows})
        if agent_ids:
            agents = self.supabase.table("agents")\
                .select("id, name")\
                .eq("workspace_id", workspace_id)\
                .in_("id", agent_ids)\
                .execute().data or []
            names = {a["id"]: a["name"] for a in agents}
        return [WhatsAppCloudResponse(**row, agent_name=names.get(row["agent_id"])) for row in rows]

    def create_connection(self, data: WhatsAppCloudCreate, workspace_id: str) -> WhatsAppCloudResponse:
        agent = get_owned_or_404(self.supabase, "agents", data.agent_id, workspace_id, detail="Agent not found")
        webhook_url = webhook_url_for(data.phone_number_id)
        existing = self.supabase.table(TABLE)\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .eq("phone_number_id", data.phone_number_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="This phone number id is already connected")
        result = self.supabase.table(TABLE).insert({
            "workspace_id": workspace_id,
            "agent_id": data.agent_id,
            "phone_number_id": data.phone_number_id,
            "display_phone_number": data.display_phone_number,
            "access_token": data.access_token,
            "webhook_url": webhook_url,
            "verify_token": settings.whatsapp_verify_token,
            "status": "inactive",
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create connection")
        logger.info(f"WhatsApp Cloud number {data.phone_number_id} connected to agent {data.agent_id}")
        return WhatsAppCloudResponse(**result.data[0], agent_name=agent["name"])

    def update_status(self, connection_id: str, status: str, workspace_id: str) -> WhatsAppCloudResponse:
        self._get_connection_row(connection_id, workspace_id)
        result = self.supabase.table(TABLE)\
            .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", connection_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return WhatsAppCloudResponse(**result.data[0])

    def delete_connection(self, connection_id: str, workspace_id: str) -> bool:
        self._get_connection_row(connection_id, workspace_id)
        result = self.supabase.table(TABLE)\
            .delete()\
            .eq("id", connection_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0

    # Public webhook

    def _connection_by_number(self, phone_number_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(TABLE)\
            .select("*")\
            .eq("phone_number_id", phone_number_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def verify_webhook(self, phone_number_id: str, mode: Optional[str], token: Optional[str],
                       challenge: Optional[str]) -> str:
        connection = self._connection_by_number(phone_number_id)
        expected = connection["verify_token"] if connection else settings.whatsapp_verify_token
        if mode != "subscribe" or not token or token != expected or challenge is None:
            logger.warning(f"WhatsApp Cloud webhook verification refused for {phone_number_id}")
            raise HTTPException(status_code=403, detail="Verification failed")
        return challenge

    def ingest(self, phone_number_id: str, payload: Dict[str, Any]) -> WebhookResult:
        """Store inbound text messages in the workspace owning the number"""
        messages = extract_text_messages(payload)
        connection = self._connection_by_number(phone_number_id)
        if not connection:
            logger.warning(f"Webhook for unknown phone number id {phone_number_id}, {len(messages)} message(s) dropped")
            return WebhookResult(received=len(messages))

        conversations = ConversationService(self.supabase)
        stored = 0
        for message in messages:
            conversations.record_inbound(
                connection["workspace_id"], format_phone_number(message["from"]), message["body"], CHANNEL,
                agent_id=connection["agent_id"], name=message["name"], metadata={"wamid": message["wamid"]},
            )
            stored += 1
        return WebhookResult(received=len(messages), stored=stored)
