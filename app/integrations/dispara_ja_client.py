"""
HTTP client for the Dispara-Já WhatsApp gateway
"""

from typing import Any, Dict, List
from urllib.parse import urlparse
import html
import logging
import time

import httpx
from fastapi import HTTPException, status

from app.config import settings

logger = logging.getLogger(__name__)

MAX_BLOCK_SIZE = 1000
DEFAULT_SID = "3"


def split_message_into_blocks(message: str, limit: int = MAX_BLOCK_SIZE) -> List[str]:
    """Split text into blocks of at most `limit` chars, breaking on line boundaries when possible."""
    if len(message) <= limit:
        return [message]
    blocks = []
    current = ""
    for line in message.split("\n"):
        if len(current) + len(line) + 1 > limit:
            if current:
                blocks.append(current.strip())
                current = ""
            if len(line) > limit:
                blocks.extend(line[i:i + limit].strip() for i in range(0, len(line), limit))
            else:
                current = line
        else:
            current = f"{current}\n{line}" if current else line
    if current:
        blocks.append(current.strip())
    return [b for b in blocks if b]


def format_recipient(phone: str) -> str:
    return phone if phone.startswith("+") else f"+{phone}"


class DisparaJaError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class DisparaJaClient:
    def __init__(self, base_url: str = None, timeout: float = None, block_delay: float = 1.0):
        self.base_url = (base_url or settings.dispara_ja_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.block_delay = block_delay

    def _get(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(f"{self.base_url}{path}", params=params, headers={"Accept": "application/json"})

    def delete_account(self, secret: str) -> None:
        """Drop any WhatsApp account bound to the secret. Provider errors are ignored."""
        try:
            self._get("/delete/wa.account", {"secret": secret})
        except httpx.HTTPError as e:
            logger.warning(f"Dispara-Já account cleanup failed (ignored): {e}")

    def create_link(self, secret: str, sid: str = DEFAULT_SID) -> Dict[str, Any]:
        """Request a QR code link. Returns the provider payload containing data.qrimagelink/infolink."""
        try:
            response = self._get("/create/wa.link", {"secret": secret, "sid": sid})
        except httpx.HTTPError as e:
            logger.error(f"Dispara-Já unreachable while creating link: {e}")
            raise DisparaJaError("Dispara-Já unavailable")
        if response.status_code >= 400:
            logger.error(f"Dispara-Já create link failed: {response.status_code} {response.text[:200]}")
            raise DisparaJaError(f"Dispara-Já error: {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            raise DisparaJaError("Invalid response from Dispara-Já")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not data or not data.get("qrimagelink") or not data.get("infolink"):
            raise DisparaJaError("QR code or info link missing from Dispara-Já response")
        return payload

    def get_info(self, info_link: str) -> Dict[str, Any]:
        """Poll an info link returned by create_link. Only links on the provider host are followed."""
        provider_host = urlparse(self.base_url).hostname
        if urlparse(info_link).hostname != provider_host:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Info link must point to Dispara-Já")
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(info_link, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise DisparaJaError(f"Dispara-Já unavailable: {e}")
        if response.status_code >= 400:
            raise DisparaJaError(f"Dispara-Já error: {response.status_code}")
        try:
            return response.json()
        except ValueError:
            raise DisparaJaError("Invalid response from Dispara-Já")

    def send_text(self, secret: str, account: str, recipient: str, message: str) -> int:
        """Send a text message, split into blocks. Returns the number of blocks sent."""
        blocks = split_message_into_blocks(html.unescape(message))
        with httpx.Client(timeout=self.timeout) as client:
            for index, block in enumerate(blocks):
                form = {
                    "secret": secret,
                    "account": account,
                    "type": "text",
                    "recipient": format_recipient(recipient),
                    "message": block,
                    "delayMessage": "1",
                    "priority": "1",
                }
                try:
                    response = client.post(f"{self.base_url}/send/whatsapp", data=form)
                except httpx.HTTPError as e:
                    raise DisparaJaError(f"Dispara-Já unavailable: {e}")
                if response.status_code >= 400:
                    logger.error(f"Dispara-Já send failed: {response.status_code} {response.text[:200]}")
                    raise DisparaJaError("Failed to send message through Dispara-Já")
                if len(blocks) > 1 and index < len(blocks) - 1 and self.block_delay:
                    time.sleep(self.block_delay)
        return len(blocks)


def get_dispara_ja_client() -> DisparaJaClient:
    return DisparaJaClient()
