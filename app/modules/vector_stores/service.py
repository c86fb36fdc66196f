import logging
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List

from app.core.workspace_guard import find_owned
from app.integrations.openai_client import OpenAIClientFactory, OpenAIGateway
from app.modules.vector_stores.schemas import (
    VectorStoreCreate, VectorStoreResponse, VectorStoreFile
)

logger = logging.getLogger(__name__)


class VectorStoreService:
    def __init__(self, supabase: Client, openai_factory: OpenAIClientFactory):
        self.supabase = supabase
        self.openai_factory = openai_factory

    def _gateway(self, workspace_id: str) -> OpenAIGateway:
        return self.openai_factory.for_workspace(self.supabase, workspace_id)

    def get_store_row(self, store_id: str, workspace_id: str) -> Dict[str, Any]:
        """Accepts either the OpenAI id or the row id"""
        row = find_owned(self.supabase, "vector_stores", store_id, workspace_id, id_column="openai_id")\
            or find_owned(self.supabase, "vector_stores", store_id, workspace_id)
        if not row:
            raise HTTPException(status_code=404, detail="Vector store not found")
        return row

    def _check_files(self, file_ids: List[str], workspace_id: str) -> Dict[str, Dict[str, Any]]:
        rows = self.supabase.table("files")\
            .select("openai_id, filename")\
            .eq("workspace_id", workspace_id)\
            .in_("openai_id", file_ids)\
            .execute().data or []
        by_id = {r["openai_id"]: r for r in rows}
        missing = [fid for fid in file_ids if fid not in by_id]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown files: {', '.join(missing)}")
        return by_id

    def _filenames(self, workspace_id: str) -> Dict[str, str]:
        rows = self.supabase.table("files")\
            .select("openai_id, filename")\
            .eq("workspace_id", workspace_id)\
            .execute().data or []
        return {r["openai_id"]: r["filename"] for r in rows}

    def _describe(self, row: Dict[str, Any], gateway: OpenAIGateway, filenames: Dict[str, str]) -> VectorStoreResponse:
        remote = gateway.retrieve_vector_store(row["openai_id"])
        files = [
            VectorStoreFile(id=f["id"], filename=filenames.get(f["id"]), status=f.get("status"))
            for f in gateway.list_vector_store_files(row["openai_id"])
        ]
        return VectorStoreResponse(
            id=row["id"],
            openai_id=row["openai_id"],
            name=row["name"],
            status=remote.get("status"),
            file_counts=remote.get("file_counts"),
            files=files,
            created_at=row.get("created_at"),
        )

    def list_stores(self, workspace_id: str) -> List[VectorStoreResponse]:
        rows = self.supabase.table("vector_stores")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        if not rows:
            return []
        gateway = self._gateway(workspace_id)
        filenames = self._filenames(workspace_id)
        stores = []
        for row in rows:
            try:
                stores.append(self._describe(row, gateway, filenames))
            except HTTPException as e:
                if e.status_code != 404:
                    raise
                logger.warning(f"Vector store {row['openai_id']} missing at OpenAI, skipped")
        return stores

    def create_store(self, data: VectorStoreCreate, workspace_id: str) -> VectorStoreResponse:
        file_ids = list(dict.fromkeys(data.file_ids))
        if not file_ids:
            raise HTTPException(status_code=400, detail="At least one file is required")
        self._check_files(file_ids, workspace_id)
        gateway = self._gateway(workspace_id)
        remote = gateway.create_vector_store(data.name.strip(), file_ids)
        result = self.supabase.table("vector_stores").insert({
            "workspace_id": workspace_id,
            "openai_id": remote["id"],
            "name": data.name.strip(),
        }).execute()
        row = result.data[0]
        self.supabase.table("vector_store_files").insert(
            [{"vector_store_id": row["id"], "file_id": fid} for fid in file_ids]
        ).execute()
        logger.info(f"Vector store {remote['id']} created with {len(file_ids)} files")
        return self._describe(row, gateway, self._filenames(workspace_id))

    def delete_store(self, store_id: str, workspace_id: str) -> bool:
        row = self.get_store_row(store_id, workspace_id)
        try:
            self._gateway(workspace_id).delete_vector_store(row["openai_id"])
        except HTTPException as e:
            if e.status_code != 404:
                raise
        self.supabase.table("agents")\
            .update({"vector_store_id": None})\
            .eq("vector_store_id", row["openai_id"])\
            .eq("workspace_id", workspace_id)\
            .execute()
        self.supabase.table("vector_store_files").delete().eq("vector_store_id", row["id"]).execute()
        self.supabase.table("vector_stores").delete().eq("id", row["id"]).execute()
        return True

    def list_store_files(self, store_id: str, workspace_id: str) -> List[VectorStoreFile]:
        row = self.get_store_row(store_id, workspace_id)
        filenames = self._filenames(workspace_id)
        return [
            VectorStoreFile(id=f["id"], filename=filenames.get(f["id"]), status=f.get("status"))
            for f in self._gateway(workspace_id).list_vector_store_files(row["openai_id"])
        ]

    def add_store_file(self, store_id: str, file_id: str, workspace_id: str) -> VectorStoreFile:
        row = self.get_store_row(store_id, workspace_id)
        files = self._check_files([file_id], workspace_id)
        attached = self._gateway(workspace_id).add_vector_store_file(row["openai_id"], file_id)
        self.supabase.table("vector_store_files")\
            .delete()\
            .eq("vector_store_id", row["id"])\
            .eq("file_id", file_id)\
            .execute()
        self.supabase.table("vector_store_files").insert({"vector_store_id": row["id"], "file_id": file_id}).execute()
        return VectorStoreFile(id=file_id, filename=files[file_id]["filename"], status=attached.get("status"))

    def remove_store_file(self, store_id: str, file_id: str, workspace_id: str) -> bool:
        row = self.get_store_row(store_id, workspace_id)
        self._check_files([file_id], workspace_id)
        self._gateway(workspace_id).delete_vector_store_file(row["openai_id"], file_id)
        self.supabase.table("vector_store_files")\
            .delete()\
            .eq("vector_store_id", row["id"])\
            .eq("file_id", file_id)\
            .execute()
        return True
