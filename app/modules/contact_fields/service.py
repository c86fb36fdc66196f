import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import get_owned_or_404, escape_like
from app.modules.contact_fields.schemas import (
    ContactFieldCreate, ContactFieldUpdate, ContactFieldResponse
)

logger = logging.getLogger(__name__)


class ContactFieldService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_field_row(self, field_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "contact_fields", field_id, workspace_id, detail="Contact field not found")

    def _ensure_unique_name(self, name: str, workspace_id: str, exclude_id: Optional[str] = None) -> None:
        query = self.supabase.table("contact_fields")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .ilike("name", escape_like(name))
        if exclude_id:
            query = query.neq("id", exclude_id)
        if query.limit(1).execute().data:
            raise HTTPException(status_code=409, detail="A contact field with this name already exists")

    def _next_order(self, workspace_id: str) -> int:
        result = self.supabase.table("contact_fields")\
            .select("order")\
            .eq("workspace_id", workspace_id)\
            .order("order", desc=True)\
            .limit(1)\
            .execute()
        if not result.data:
            return 0
        return (result.data[0].get("order") or 0) + 1

    def list_fields(self, workspace_id: str) -> List[ContactFieldResponse]:
        result = self.supabase.table("contact_fields")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("order")\
            .execute()
        return [ContactFieldResponse(**row) for row in result.data or []]

    def create_field(self, data: ContactFieldCreate, workspace_id: str) -> ContactFieldResponse:
        name = data.name.strip()
        self._ensure_unique_name(name, workspace_id)
        payload = data.model_dump()
        payload["name"] = name
        payload["workspace_id"] = workspace_id
        if payload["order"] is None:
            payload["order"] = self._next_order(workspace_id)
        result = self.supabase.table("contact_fields").insert(payload).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create contact field")
        logger.info(f"Contact field '{name}' ({data.type}) created")
        return ContactFieldResponse(**result.data[0])

    def update_field(self, field_id: str, data: ContactFieldUpdate, workspace_id: str) -> ContactFieldResponse:
        current = self._get_field_row(field_id, workspace_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") is not None:
            update_data["name"] = update_data["name"].strip()
            self._ensure_unique_name(update_data["name"], workspace_id, exclude_id=field_id)
        field_type = update_data.get("type") or current.get("type")
        options = update_data["options"] if "options" in update_data else current.get("options")
        if field_type == "select" and not options:
            raise HTTPException(status_code=400, detail="Select fields require at least one option")
        if not update_data:
            return ContactFieldResponse(**current)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("contact_fields")\
            .update(update_data)\
            .eq("id", field_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return ContactFieldResponse(**result.data[0])

    def delete_field(self, field_id: str, workspace_id: str) -> bool:
        """Delete a field together with the values stored for it"""
        self._get_field_row(field_id, workspace_id)
        self.supabase.table("lead_custom_fields").delete().eq("field_id", field_id).execute()
        result = self.supabase.table("contact_fields")\
            .delete()\
            .eq("id", field_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0
