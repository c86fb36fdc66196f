import logging
from supabase import Client
from fastapi import HTTPException
from typing import List

from app.core.workspace_guard import get_owned_or_404
from app.integrations.openai_client import OpenAIClientFactory
from app.modules.files.schemas import FileResponse

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 512 * 1024 * 1024


class FileService:
    def __init__(self, supabase: Client, openai_factory: OpenAIClientFactory):
        self.supabase = supabase
        self.openai_factory = openai_factory

    def upload_file(self, filename: str, content: bytes, workspace_id: str) -> FileResponse:
        if not filename:
            raise HTTPException(status_code=400, detail="File name is required")
        if not content:
            raise HTTPException(status_code=400, detail="File is empty")
        if len(content) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=400, detail="File too large")
        uploaded = self.openai_factory.for_workspace(self.supabase, workspace_id)\
            .upload_file(filename, content, purpose="assistants")
        result = self.supabase.table("files").insert({
            "workspace_id": workspace_id,
            "openai_id": uploaded["id"],
            "filename": uploaded.get("filename") or filename,
            "bytes": uploaded.get("bytes") or len(content),
            "purpose": "assistants",
        }).execute()
        logger.info(f"File '{filename}' uploaded as {uploaded['id']}")
        return FileResponse(**result.data[0])

    def list_files(self, workspace_id: str) -> List[FileResponse]:
        result = self.supabase.table("files")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("created_at", desc=True)\
            .execute()
        return [FileResponse(**row) for row in result.data or []]

    def delete_file(self, file_id: str, workspace_id: str) -> bool:
        """Delete at OpenAI, then drop the record and its vector store links"""
        row = get_owned_or_404(
            self.supabase, "files", file_id, workspace_id, detail="File not found", id_column="openai_id"
        )
        gateway = self.openai_factory.for_workspace(self.supabase, workspace_id)
        try:
            gateway.delete_file(file_id)
        except HTTPException as e:
            if e.status_code != 404:
                raise
            logger.warning(f"File {file_id} already gone at OpenAI")
        self.supabase.table("vector_store_files").delete().eq("file_id", file_id).execute()
        self.supabase.table("files").delete().eq("id", row["id"]).execute()
        return True
