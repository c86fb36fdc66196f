"""
WhatsApp Cloud API (Graph) client for outbound text messages
"""

from typing import Any, Dict
import logging

import httpx
from fastapi import HTTPException, status

from app.config import settings

logger = logging.getLogger(__name__)


class WhatsAppCloudClient:
    def __init__(self, graph_url: str = None, timeout: float = None):
        self.graph_url = (graph_url or settings.whatsapp_graph_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    def send_text(self, phone_number_id: str, access_token: str, to: str, body: str) -> Dict[str, Any]:
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to.lstrip("+"),
            "type": "text",
            "text": {"preview_url": False, "body": body},
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    f"{self.graph_url}/{phone_number_id}/messages",
                    json=payload,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp Cloud unreachable: {e}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="WhatsApp Cloud unavailable")
        if response.status_code >= 400:
            logger.error(f"WhatsApp Cloud send failed: {response.status_code} {response.text[:200]}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send message through WhatsApp Cloud")
        return response.json()


def get_whatsapp_cloud_client() -> WhatsAppCloudClient:
    return WhatsAppCloudClient()
