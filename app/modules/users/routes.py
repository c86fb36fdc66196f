from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.mailer import Mailer, get_mailer
from app.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserListResponse, UserCreatedResponse,
    MyPermissionsResponse, UserPermissionsResponse, UserPermissionsUpdate
)
from app.modules.users.service import UserService
from app.core.dependencies import (
    WorkspaceContext, get_workspace_context, require_permission,
    check_permission, get_access_cache
)
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])

def get_user_service(
    supabase: Client = Depends(get_supabase),
    mailer: Mailer = Depends(get_mailer)
) -> UserService:
    return UserService(supabase, mailer)


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    context: WorkspaceContext = Depends(require_permission("users.view")),
    service: UserService = Depends(get_user_service)
):
    """List users of the current workspace (paginated, searchable by name/email)"""
    return service.list_users(context.workspace_id, page=page, limit=limit, search=search)


@router.post("", response_model=UserCreatedResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    context: WorkspaceContext = Depends(require_permission("users.create")),
    service: UserService = Depends(get_user_service)
):
    """Invite a user (users.create; only admins invite admins and owners)"""
    return service.create_user(user_data, context)


@router.get("/me/permissions", response_model=MyPermissionsResponse)
async def get_my_permissions(
    context: WorkspaceContext = Depends(get_workspace_context),
    service: UserService = Depends(get_user_service),
    cache: Dict = Depends(get_access_cache)
):
    """Effective permissions of the current user"""
    return service.get_my_permissions(context, cache)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    context: WorkspaceContext = Depends(get_workspace_context),
    service: UserService = Depends(get_user_service),
    supabase: Client = Depends(get_supabase),
    cache: Dict = Depends(get_access_cache)
):
    """Get user by ID (self, or users.view)"""
    if user_id != context.user_id:
        check_permission(context, "users.view", supabase, cache)
    return service.get_user(user_id, context.workspace_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    context: WorkspaceContext = Depends(get_workspace_context),
    service: UserService = Depends(get_user_service),
    cache: Dict = Depends(get_access_cache)
):
    """Update user (self, or users.update; role, status and group need users.manage)"""
    return service.update_user(user_id, user_data, context, cache)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    context: WorkspaceContext = Depends(require_permission("users.delete")),
    service: UserService = Depends(get_user_service)
):
    """Delete user (users.delete, never yourself)"""
    service.delete_user(user_id, context)
    return None


@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: str,
    context: WorkspaceContext = Depends(require_permission("users.manage")),
    service: UserService = Depends(get_user_service)
):
    return service.get_user_permissions(user_id, context.workspace_id)


@router.patch("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def set_user_permissions(
    user_id: str,
    body: UserPermissionsUpdate,
    context: WorkspaceContext = Depends(require_permission("users.manage")),
    service: UserService = Depends(get_user_service)
):
    """Store per-user permission overrides (applied after role defaults and group)"""
    return service.set_user_permissions(user_id, body.permissions, context)
