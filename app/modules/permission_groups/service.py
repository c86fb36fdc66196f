import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import get_owned_or_404
from app.modules.permission_groups.schemas import (
    PermissionGroupCreate, PermissionGroupUpdate, PermissionGroupResponse,
    GroupItemInput, GroupItemResponse
)

logger = logging.getLogger(__name__)


def desired_items(permission_ids: Optional[List[str]], items: Optional[List[GroupItemInput]]) -> Dict[str, bool]:
    """permission_ids grant; explicit items override them per permission."""
    desired = {pid: True for pid in permission_ids or []}
    for item in items or []:
        desired[item.permission_id] = item.enabled
    return desired


class PermissionGroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_group_row(self, group_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "permission_groups", group_id, workspace_id, detail="Permission group not found")

    def _ensure_unique_name(self, name: str, workspace_id: str, exclude_id: Optional[str] = None) -> None:
        query = self.supabase.table("permission_groups")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .eq("name", name)
        if exclude_id:
            query = query.neq("id", exclude_id)
        if query.limit(1).execute().data:
            raise HTTPException(status_code=409, detail="A permission group with this name already exists")

    def _catalog(self, permission_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not permission_ids:
            return {}
        result = self.supabase.table("permissions")\
            .select("id, key, name")\
            .in_("id", permission_ids)\
            .execute()
        return {p["id"]: p for p in result.data or []}

    def _write_items(self, group_id: str, desired: Dict[str, bool]) -> None:
        catalog = self._catalog(list(desired))
        unknown = [pid for pid in desired if pid not in catalog]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown permission ids: {', '.join(unknown)}")
        self.supabase.table("permission_group_items")\
            .delete()\
            .eq("group_id", group_id)\
            .execute()
        if desired:
            self.supabase.table("permission_group_items").insert([
                {"group_id": group_id, "permission_id": pid, "enabled": enabled}
                for pid, enabled in desired.items()
            ]).execute()

    def _with_items(self, groups: List[Dict[str, Any]]) -> List[PermissionGroupResponse]:
        if not groups:
            return []
        items_result = self.supabase.table("permission_group_items")\
            .select("group_id, permission_id, enabled")\
            .in_("group_id", [g["id"] for g in groups])\
            .execute()
        items = items_result.data or []
        catalog = self._catalog(list({i["permission_id"] for i in items}))
        by_group: Dict[str, List[GroupItemResponse]] = {}
        for item in items:
            permission = catalog.get(item["permission_id"])
            if not permission:
                continue
            by_group.setdefault(item["group_id"], []).append(GroupItemResponse(
                permission_id=permission["id"],
                key=permission["key"],
                name=permission["name"],
                enabled=bool(item["enabled"]),
            ))
        return [PermissionGroupResponse(**g, items=by_group.get(g["id"], [])) for g in groups]

    def list_groups(self, workspace_id: str) -> List[PermissionGroupResponse]:
        result = self.supabase.table("permission_groups")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("name")\
            .execute()
        return self._with_items(result.data or [])

    def get_group(self, group_id: str, workspace_id: str) -> PermissionGroupResponse:
        return self._with_items([self._get_group_row(group_id, workspace_id)])[0]

    def create_group(self, data: PermissionGroupCreate, workspace_id: str) -> PermissionGroupResponse:
        name = data.name.strip()
        self._ensure_unique_name(name, workspace_id)
        desired = desired_items(data.permission_ids, data.items)
        unknown = [pid for pid in desired if pid not in self._catalog(list(desired))]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown permission ids: {', '.join(unknown)}")

        result = self.supabase.table("permission_groups").insert({
            "workspace_id": workspace_id,
            "name": name,
            "description": data.description,
            "is_default": data.is_default,
            "is_custom": data.is_custom,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create permission group")
        group = result.data[0]
        try:
            self._write_items(group["id"], desired)
        except Exception:
            self.supabase.table("permission_groups").delete().eq("id", group["id"]).execute()
            raise
        logger.info(f"Permission group '{name}' created with {len(desired)} items")
        return self.get_group(group["id"], workspace_id)

    def update_group(self, group_id: str, data: PermissionGroupUpdate, workspace_id: str) -> PermissionGroupResponse:
        self._get_group_row(group_id, workspace_id)
        update_data = {}
        if data.name is not None:
            name = data.name.strip()
            self._ensure_unique_name(name, workspace_id, exclude_id=group_id)
            update_data["name"] = name
        if data.description is not None:
            update_data["description"] = data.description
        if data.is_default is not None:
            update_data["is_default"] = data.is_default
        if update_data:
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            self.supabase.table("permission_groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .eq("workspace_id", workspace_id)\
                .execute()
        if data.permission_ids is not None or data.items is not None:
            self._write_items(group_id, desired_items(data.permission_ids, data.items))
        return self.get_group(group_id, workspace_id)

    def delete_group(self, group_id: str, workspace_id: str) -> bool:
        """Detach users, then remove items and the group"""
        self._get_group_row(group_id, workspace_id)
        self.supabase.table("users")\
            .update({"permission_group_id": None})\
            .eq("permission_group_id", group_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        self.supabase.table("permission_group_items")\
            .delete()\
            .eq("group_id", group_id)\
            .execute()
        result = self.supabase.table("permission_groups")\
            .delete()\
            .eq("id", group_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0
