"""
Outbound delivery of operator messages through the conversation's channel
"""

import logging
from typing import Any, Dict, Optional
from supabase import Client

from app.integrations.dispara_ja_client import DisparaJaClient
from app.integrations.whatsapp_cloud_client import WhatsAppCloudClient
from app.modules.leads.phone import ORIGIN_MARKER

logger = logging.getLogger(__name__)

CHANNEL_TABLES = {
    "dispara_ja": ("dispara_ja_connections", "ativo"),
    "whatsapp_cloud": ("whatsapp_cloud_connections", "active"),
}


def recipient_phone(lead_phone: str) -> str:
    """Strip the origin suffix so the provider receives the real number."""
    return lead_phone.split(ORIGIN_MARKER, 1)[0]


class ChannelDispatcher:
    def __init__(self, supabase: Client, dispara_ja: DisparaJaClient, whatsapp_cloud: WhatsAppCloudClient):
        self.supabase = supabase
        self.dispara_ja = dispara_ja
        self.whatsapp_cloud = whatsapp_cloud

    def find_connection(self, channel: str, workspace_id: str, agent_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Connection of the conversation's agent, else any active one of the workspace."""
        table, active_status = CHANNEL_TABLES[channel]
        if agent_id:
            result = self.supabase.table(table)\
                .select("*")\
                .eq("workspace_id", workspace_id)\
                .eq("agent_id", agent_id)\
                .limit(1)\
                .execute()
            if result.data:
                return result.data[0]
        result = self.supabase.table(table)\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .eq("status", active_status)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def deliver(self, conversation: Dict[str, Any], lead: Dict[str, Any], content: str) -> bool:
        """Send through the channel. Returns False when there is nothing to send through."""
        channel = conversation.get("channel")
        if channel not in CHANNEL_TABLES:
            return False
        connection = self.find_connection(channel, conversation["workspace_id"], conversation.get("agent_id"))
        if not connection:
            logger.info(f"No {channel} connection for conversation {conversation['id']}, message stored only")
            return False
        to = recipient_phone(lead["phone"])
        if channel == "dispara_ja":
            blocks = self.dispara_ja.send_text(connection["secret"], connection["unique"], to, content)
            logger.info(f"Conversation {conversation['id']}: sent {blocks} block(s) via Dispara-Já")
        else:
            self.whatsapp_cloud.send_text(connection["phone_number_id"], connection["access_token"], to, content)
            logger.info(f"Conversation {conversation['id']}: sent via WhatsApp Cloud")
        return True
