import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import get_owned_or_404
from app.modules.conversations.delivery import ChannelDispatcher
from app.modules.conversations.schemas import (
    ConversationCreate, ConversationResponse, ConversationLead,
    MessageCreate, MessageResponse, ReadResponse
)
from app.modules.leads.service import LeadService

logger = logging.getLogger(__name__)

MESSAGE_PAGE_SIZE = 100


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationService:
    def __init__(self, supabase: Client, dispatcher: Optional[ChannelDispatcher] = None):
        self.supabase = supabase
        self.dispatcher = dispatcher
        self.leads = LeadService(supabase)

    def get_conversation_row(self, conversation_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(
            self.supabase, "conversations", conversation_id, workspace_id, detail="Conversation not found"
        )

    def _enrich(self, conversations: List[Dict[str, Any]]) -> List[ConversationResponse]:
        if not conversations:
            return []
        lead_ids = list({c["lead_id"] for c in conversations})
        leads = self.supabase.table("leads")\
            .select("id, name, phone, photo")\
            .in_("id", lead_ids)\
            .execute().data or []
        leads_by_id = {lead["id"]: lead for lead in leads}
        labels = self.leads.labels_for(lead_ids)

        messages = self.supabase.table("messages")\
            .select("conversation_id, content, sender, read, created_at")\
            .in_("conversation_id", [c["id"] for c in conversations])\
            .order("created_at", desc=True)\
            .execute().data or []
        last: Dict[str, Dict[str, Any]] = {}
        unread: Dict[str, int] = {}
        for message in messages:
            cid = message["conversation_id"]
            last.setdefault(cid, message)
            if message.get("sender") == "user" and not message.get("read"):
                unread[cid] = unread.get(cid, 0) + 1

        responses = []
        for conversation in conversations:
            lead = leads_by_id.get(conversation["lead_id"])
            last_message = last.get(conversation["id"])
            row = {k: v for k, v in conversation.items() if k not in ("last_message_at", "lead", "labels")}
            responses.append(ConversationResponse(
                **row,
                lead=ConversationLead(**lead) if lead else None,
                last_message=last_message["content"] if last_message else None,
                last_message_at=last_message["created_at"] if last_message else conversation.get("created_at"),
                unread_count=unread.get(conversation["id"], 0),
                labels=labels.get(conversation["lead_id"], []),
            ))
        responses.sort(key=lambda c: c.last_message_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return responses

    def list_conversations(self, workspace_id: str) -> List[ConversationResponse]:
        result = self.supabase.table("conversations")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .execute()
        return self._enrich(result.data or [])

    def get_conversation(self, conversation_id: str, workspace_id: str) -> ConversationResponse:
        return self._enrich([self.get_conversation_row(conversation_id, workspace_id)])[0]

    def create_conversation(self, data: ConversationCreate, workspace_id: str) -> ConversationResponse:
        self.leads.get_lead_row(data.lead_id, workspace_id)
        if data.agent_id:
            get_owned_or_404(self.supabase, "agents", data.agent_id, workspace_id, detail="Agent not found")
        existing = self.supabase.table("conversations")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .eq("lead_id", data.lead_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Conversation already exists for this lead")
        result = self.supabase.table("conversations").insert({
            "workspace_id": workspace_id,
            "lead_id": data.lead_id,
            "agent_id": data.agent_id,
            "channel": data.channel,
            "status": "open",
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create conversation")
        return self._enrich(result.data)[0]

    def find_or_create_for_lead(
        self,
        lead_id: str,
        workspace_id: str,
        channel: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Conversation row of a lead, created on first contact."""
        existing = self.supabase.table("conversations")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .eq("lead_id", lead_id)\
            .limit(1)\
            .execute()
        if existing.data:
            return existing.data[0]
        result = self.supabase.table("conversations").insert({
            "workspace_id": workspace_id,
            "lead_id": lead_id,
            "agent_id": agent_id,
            "channel": channel,
            "status": "open",
        }).execute()
        return result.data[0]

    def record_inbound(self, workspace_id: str, phone: str, content: str, channel: str,
                       agent_id: Optional[str] = None, name: Optional[str] = None,
                       metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Store a message received from a lead, creating the lead and conversation on first contact."""
        lead = self.leads.find_by_phone(phone, workspace_id)
        if not lead:
            lead = self.supabase.table("leads").insert({
                "workspace_id": workspace_id,
                "name": name or phone,
                "phone": phone,
                "source": channel,
            }).execute().data[0]
            logger.info(f"Lead created from {channel} message in workspace {workspace_id}")
        conversation = self.find_or_create_for_lead(lead["id"], workspace_id, channel=channel, agent_id=agent_id)
        if conversation.get("channel") != channel:
            self.supabase.table("conversations")\
                .update({"channel": channel})\
                .eq("id", conversation["id"])\
                .execute()
            conversation["channel"] = channel
        return self.store_message(conversation, content, "user", is_manual=False, read=False, metadata=metadata)

    def list_messages(self, conversation_id: str, workspace_id: str) -> List[MessageResponse]:
        """Latest messages, newest first"""
        self.get_conversation_row(conversation_id, workspace_id)
        result = self.supabase.table("messages")\
            .select("*")\
            .eq("conversation_id", conversation_id)\
            .order("created_at", desc=True)\
            .limit(MESSAGE_PAGE_SIZE)\
            .execute()
        return [MessageResponse(**m) for m in result.data or []]

    def store_message(self, conversation: Dict[str, Any], content: str, sender: str,
                      is_manual: bool = False, read: bool = True,
                      metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        result = self.supabase.table("messages").insert({
            "conversation_id": conversation["id"],
            "content": content,
            "sender": sender,
            "is_manual": is_manual,
            "read": read,
            "metadata": metadata,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to store message")
        self.supabase.table("conversations")\
            .update({"last_message_at": _now(), "updated_at": _now()})\
            .eq("id", conversation["id"])\
            .execute()
        return result.data[0]

    def send_message(self, conversation_id: str, data: MessageCreate, workspace_id: str) -> MessageResponse:
        """Deliver manual operator messages first, then store. Nothing is stored when delivery fails."""
        content = data.content.strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message content is required")
        conversation = self.get_conversation_row(conversation_id, workspace_id)
        if data.is_manual and data.sender == "human" and self.dispatcher:
            lead = self.leads.get_lead_row(conversation["lead_id"], workspace_id)
            self.dispatcher.deliver(conversation, lead, content)
        message = self.store_message(
            conversation, content, data.sender,
            is_manual=data.is_manual, read=data.sender != "user", metadata=data.metadata
        )
        return MessageResponse(**message)

    def mark_read(self, conversation_id: str, workspace_id: str) -> ReadResponse:
        self.get_conversation_row(conversation_id, workspace_id)
        result = self.supabase.table("messages")\
            .update({"read": True})\
            .eq("conversation_id", conversation_id)\
            .eq("sender", "user")\
            .eq("read", False)\
            .execute()
        return ReadResponse(conversation_id=conversation_id, marked=len(result.data or []))

    def delete_conversation(self, conversation_id: str, workspace_id: str) -> bool:
        self.get_conversation_row(conversation_id, workspace_id)
        self.supabase.table("messages").delete().eq("conversation_id", conversation_id).execute()
        result = self.supabase.table("conversations")\
            .delete()\
            .eq("id", conversation_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0
