import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import get_owned_or_404, escape_like
from app.modules.tags.schemas import TagCreate, TagUpdate, TagResponse

logger = logging.getLogger(__name__)


class TagService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_tag_row(self, tag_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "tags", tag_id, workspace_id, detail="Tag not found")

    def _ensure_unique_name(self, name: str, workspace_id: str, exclude_id: Optional[str] = None) -> None:
        # ilike on an escaped name is a case-insensitive equality
        query = self.supabase.table("tags")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .ilike("name", escape_like(name))
        if exclude_id:
            query = query.neq("id", exclude_id)
        if query.limit(1).execute().data:
            raise HTTPException(status_code=409, detail="A tag with this name already exists")

    def _usage_counts(self, tag_ids: List[str]) -> Dict[str, int]:
        if not tag_ids:
            return {}
        links = self.supabase.table("lead_tags")\
            .select("tag_id")\
            .in_("tag_id", tag_ids)\
            .execute().data or []
        counts: Dict[str, int] = {}
        for link in links:
            counts[link["tag_id"]] = counts.get(link["tag_id"], 0) + 1
        return counts

    def _to_responses(self, rows: List[Dict[str, Any]]) -> List[TagResponse]:
        counts = self._usage_counts([r["id"] for r in rows])
        return [TagResponse(**row, usage_count=counts.get(row["id"], 0)) for row in rows]

    def list_tags(self, workspace_id: str, lead_id: Optional[str] = None) -> List[TagResponse]:
        query = self.supabase.table("tags")\
            .select("*")\
            .eq("workspace_id", workspace_id)
        if lead_id:
            get_owned_or_404(self.supabase, "leads", lead_id, workspace_id, detail="Lead not found")
            links = self.supabase.table("lead_tags")\
                .select("tag_id")\
                .eq("lead_id", lead_id)\
                .execute().data or []
            if not links:
                return []
            query = query.in_("id", [link["tag_id"] for link in links])
        result = query.order("name").execute()
        return self._to_responses(result.data or [])

    def get_tag(self, tag_id: str, workspace_id: str) -> TagResponse:
        return self._to_responses([self._get_tag_row(tag_id, workspace_id)])[0]

    def create_tag(self, data: TagCreate, workspace_id: str) -> TagResponse:
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Tag name is required")
        self._ensure_unique_name(name, workspace_id)
        result = self.supabase.table("tags").insert({
            "workspace_id": workspace_id,
            "name": name,
            "color": data.color,
            "description": data.description,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create tag")
        logger.info(f"Tag '{name}' created")
        return self._to_responses(result.data)[0]

    def update_tag(self, tag_id: str, data: TagUpdate, workspace_id: str) -> TagResponse:
        self._get_tag_row(tag_id, workspace_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") is not None:
            update_data["name"] = update_data["name"].strip()
            self._ensure_unique_name(update_data["name"], workspace_id, exclude_id=tag_id)
        if update_data:
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            self.supabase.table("tags")\
                .update(update_data)\
                .eq("id", tag_id)\
                .eq("workspace_id", workspace_id)\
                .execute()
        return self.get_tag(tag_id, workspace_id)

    def delete_tag(self, tag_id: str, workspace_id: str) -> bool:
        """Delete a tag and unlink it from leads"""
        self._get_tag_row(tag_id, workspace_id)
        self.supabase.table("lead_tags").delete().eq("tag_id", tag_id).execute()
        result = self.supabase.table("tags")\
            .delete()\
            .eq("id", tag_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0
