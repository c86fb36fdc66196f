from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.permission_groups.schemas import (
    PermissionGroupCreate, PermissionGroupUpdate, PermissionGroupResponse
)
from app.modules.permission_groups.service import PermissionGroupService
from app.core.dependencies import WorkspaceContext, require_roles
from supabase import Client
from typing import List

router = APIRouter(prefix="/permission-groups", tags=["permission-groups"])

require_admin = require_roles("owner", "admin")


def get_permission_group_service(supabase: Client = Depends(get_supabase)) -> PermissionGroupService:
    return PermissionGroupService(supabase)


@router.get("", response_model=List[PermissionGroupResponse])
async def list_groups(
    context: WorkspaceContext = Depends(require_admin),
    service: PermissionGroupService = Depends(get_permission_group_service)
):
    """Permission groups of the workspace with their items"""
    return service.list_groups(context.workspace_id)


@router.post("", response_model=PermissionGroupResponse, status_code=201)
async def create_group(
    data: PermissionGroupCreate,
    context: WorkspaceContext = Depends(require_admin),
    service: PermissionGroupService = Depends(get_permission_group_service)
):
    return service.create_group(data, context.workspace_id)


@router.get("/{group_id}", response_model=PermissionGroupResponse)
async def get_group(
    group_id: str,
    context: WorkspaceContext = Depends(require_admin),
    service: PermissionGroupService = Depends(get_permission_group_service)
):
    return service.get_group(group_id, context.workspace_id)


@router.put("/{group_id}", response_model=PermissionGroupResponse)
async def update_group(
    group_id: str,
    data: PermissionGroupUpdate,
    context: WorkspaceContext = Depends(require_admin),
    service: PermissionGroupService = Depends(get_permission_group_service)
):
    """Update a group; items are replaced when permission_ids or items are given"""
    return service.update_group(group_id, data, context.workspace_id)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    context: WorkspaceContext = Depends(require_admin),
    service: PermissionGroupService = Depends(get_permission_group_service)
):
    service.delete_group(group_id, context.workspace_id)
    return None
