import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException

from app.core.security import mask_id
from app.integrations.openai_client import (
    OpenAIClientFactory, OPENAI_KEY_CONFIG, get_workspace_api_key
)
from app.modules.integrations.schemas import OpenAIKeyStatus

logger = logging.getLogger(__name__)


class IntegrationService:
    def __init__(self, supabase: Client, openai_factory: OpenAIClientFactory):
        self.supabase = supabase
        self.openai_factory = openai_factory

    def save_openai_key(self, api_key: str, workspace_id: str) -> OpenAIKeyStatus:
        """Validate the key against OpenAI, then store it for the workspace"""
        api_key = api_key.strip()
        try:
            self.openai_factory.from_key(api_key).validate_key()
        except HTTPException as e:
            if e.status_code == 502:
                raise
            raise HTTPException(status_code=400, detail="Invalid API key")

        now = datetime.now(timezone.utc).isoformat()
        existing = self.supabase.table("system_configs")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .eq("key", OPENAI_KEY_CONFIG)\
            .limit(1)\
            .execute()
        if existing.data:
            self.supabase.table("system_configs")\
                .update({"value": api_key, "updated_at": now})\
                .eq("id", existing.data[0]["id"])\
                .execute()
        else:
            self.supabase.table("system_configs").insert({
                "workspace_id": workspace_id,
                "key": OPENAI_KEY_CONFIG,
                "value": api_key,
            }).execute()
        logger.info(f"OpenAI key stored for workspace {mask_id(workspace_id)}")
        return OpenAIKeyStatus(configured=True)

    def get_openai_key_status(self, workspace_id: str) -> OpenAIKeyStatus:
        return OpenAIKeyStatus(configured=bool(get_workspace_api_key(self.supabase, workspace_id)))

    def delete_openai_key(self, workspace_id: str) -> OpenAIKeyStatus:
        self.supabase.table("system_configs")\
            .delete()\
            .eq("workspace_id", workspace_id)\
            .eq("key", OPENAI_KEY_CONFIG)\
            .execute()
        logger.info(f"OpenAI key removed for workspace {mask_id(workspace_id)}")
        return OpenAIKeyStatus(configured=False)
