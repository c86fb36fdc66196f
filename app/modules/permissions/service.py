import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, List

from app.config.permissions_config import DEFAULT_PERMISSIONS
from app.modules.permissions.schemas import PermissionCreate, PermissionResponse, RoleDefaultsResponse

logger = logging.getLogger(__name__)


class PermissionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_grouped(self) -> Dict[str, Dict[str, List[PermissionResponse]]]:
        """Catalog grouped by category, then subcategory"""
        result = self.supabase.table("permissions")\
            .select("*")\
            .order("category")\
            .order("subcategory")\
            .order("name")\
            .execute()
        grouped: Dict[str, Dict[str, List[PermissionResponse]]] = {}
        for row in result.data or []:
            permission = PermissionResponse(**row)
            subcategory = permission.subcategory or "default"
            grouped.setdefault(permission.category, {}).setdefault(subcategory, []).append(permission)
        return grouped

    def create_permission(self, data: PermissionCreate) -> PermissionResponse:
        existing = self.supabase.table("permissions")\
            .select("id")\
            .eq("key", data.key)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="A permission with this key already exists")
        result = self.supabase.table("permissions").insert(data.model_dump()).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create permission")
        logger.info(f"Permission {data.key} added to catalog")
        return PermissionResponse(**result.data[0])

    def role_defaults(self) -> RoleDefaultsResponse:
        return RoleDefaultsResponse(roles=DEFAULT_PERMISSIONS)
