"""
OpenAI access per workspace. The API key lives in system_configs, never in the environment.
Provider errors are translated to HTTP errors here so callers never return 200 with an error payload.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional
import logging

import openai
from fastapi import HTTPException, status
from openai import OpenAI
from supabase import Client

from app.config import settings

logger = logging.getLogger(__name__)

OPENAI_KEY_CONFIG = "OPENAI_API_KEY"


@contextmanager
def provider_errors(action: str):
    try:
        yield
    except openai.AuthenticationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OpenAI API key")
    except openai.NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"OpenAI resource not found ({action})")
    except openai.BadRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"OpenAI rejected {action}: {e.message}")
    except openai.APIError as e:
        logger.error(f"OpenAI error during {action}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"OpenAI request failed ({action})")


def _dump(obj: Any) -> Dict[str, Any]:
    return obj.model_dump() if hasattr(obj, "model_dump") else dict(obj)


def get_workspace_api_key(supabase: Client, workspace_id: str) -> Optional[str]:
    result = supabase.table("system_configs")\
        .select("value")\
        .eq("workspace_id", workspace_id)\
        .eq("key", OPENAI_KEY_CONFIG)\
        .limit(1)\
        .execute()
    if not result.data:
        return None
    return result.data[0].get("value") or None


class OpenAIGateway:
    def __init__(self, api_key: str, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key, timeout=settings.http_timeout_seconds)

    def validate_key(self) -> bool:
        with provider_errors("key validation"):
            self.client.models.list()
        return True

    # Assistants
    def create_assistant(self, **params) -> Dict[str, Any]:
        with provider_errors("assistant creation"):
            return _dump(self.client.beta.assistants.create(**params))

    def update_assistant(self, assistant_id: str, **params) -> Dict[str, Any]:
        with provider_errors("assistant update"):
            return _dump(self.client.beta.assistants.update(assistant_id, **params))

    def retrieve_assistant(self, assistant_id: str) -> Dict[str, Any]:
        with provider_errors("assistant lookup"):
            return _dump(self.client.beta.assistants.retrieve(assistant_id))

    def delete_assistant(self, assistant_id: str) -> bool:
        with provider_errors("assistant deletion"):
            return bool(self.client.beta.assistants.delete(assistant_id).deleted)

    # Files
    def upload_file(self, filename: str, content: bytes, purpose: str = "assistants") -> Dict[str, Any]:
        with provider_errors("file upload"):
            return _dump(self.client.files.create(file=(filename, content), purpose=purpose))

    def delete_file(self, file_id: str) -> bool:
        with provider_errors("file deletion"):
            return bool(self.client.files.delete(file_id).deleted)

    # Vector stores
    def create_vector_store(self, name: str, file_ids: List[str]) -> Dict[str, Any]:
        with provider_errors("vector store creation"):
            return _dump(self.client.vector_stores.create(name=name, file_ids=file_ids))

    def retrieve_vector_store(self, vector_store_id: str) -> Dict[str, Any]:
        with provider_errors("vector store lookup"):
            return _dump(self.client.vector_stores.retrieve(vector_store_id))

    def delete_vector_store(self, vector_store_id: str) -> bool:
        with provider_errors("vector store deletion"):
            return bool(self.client.vector_stores.delete(vector_store_id).deleted)

    def list_vector_store_files(self, vector_store_id: str) -> List[Dict[str, Any]]:
        with provider_errors("vector store file listing"):
            return [_dump(f) for f in self.client.vector_stores.files.list(vector_store_id=vector_store_id)]

    def add_vector_store_file(self, vector_store_id: str, file_id: str) -> Dict[str, Any]:
        with provider_errors("vector store file attach"):
            return _dump(self.client.vector_stores.files.create(vector_store_id=vector_store_id, file_id=file_id))

    def delete_vector_store_file(self, vector_store_id: str, file_id: str) -> bool:
        with provider_errors("vector store file detach"):
            return bool(self.client.vector_stores.files.delete(file_id, vector_store_id=vector_store_id).deleted)


class OpenAIClientFactory:
    """Builds gateways from a raw key or from the workspace's stored key."""

    def from_key(self, api_key: str) -> OpenAIGateway:
        return OpenAIGateway(api_key)

    def for_workspace(self, supabase: Client, workspace_id: str) -> OpenAIGateway:
        api_key = get_workspace_api_key(supabase, workspace_id)
        if not api_key:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OpenAI API key not configured")
        return self.from_key(api_key)


def get_openai_factory() -> OpenAIClientFactory:
    return OpenAIClientFactory()
