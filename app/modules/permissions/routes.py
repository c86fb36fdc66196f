from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.permissions.schemas import (
    PermissionCreate, PermissionResponse, GroupedPermissions, RoleDefaultsResponse
)
from app.modules.permissions.service import PermissionService
from app.core.dependencies import WorkspaceContext, require_roles
from supabase import Client

router = APIRouter(prefix="/permissions", tags=["permissions"])


def get_permission_service(supabase: Client = Depends(get_supabase)) -> PermissionService:
    return PermissionService(supabase)


@router.get("", response_model=GroupedPermissions)
async def list_permissions(
    context: WorkspaceContext = Depends(require_roles("owner", "admin")),
    service: PermissionService = Depends(get_permission_service)
):
    """Permission catalog grouped by category and subcategory (admin/owner)"""
    return service.list_grouped()


@router.post("", response_model=PermissionResponse, status_code=201)
async def create_permission(
    data: PermissionCreate,
    context: WorkspaceContext = Depends(require_roles("owner")),
    service: PermissionService = Depends(get_permission_service)
):
    """Add a catalog entry (owner only)"""
    return service.create_permission(data)


@router.get("/defaults", response_model=RoleDefaultsResponse)
async def get_role_defaults(
    context: WorkspaceContext = Depends(require_roles("owner", "admin")),
    service: PermissionService = Depends(get_permission_service)
):
    """Built-in capability map of each role"""
    return service.role_defaults()
