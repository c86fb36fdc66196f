from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.workspaces.schemas import WorkspaceResponse, WorkspaceUpdate, WorkspaceMember
from app.modules.workspaces.service import WorkspaceService
from app.core.dependencies import WorkspaceContext, get_workspace_context, require_roles
from supabase import Client
from typing import List

router = APIRouter(prefix="/workspace", tags=["workspace"])


def get_workspace_service(supabase: Client = Depends(get_supabase)) -> WorkspaceService:
    return WorkspaceService(supabase)


@router.get("", response_model=WorkspaceResponse)
async def get_workspace(
    context: WorkspaceContext = Depends(get_workspace_context),
    service: WorkspaceService = Depends(get_workspace_service)
):
    return service.get_workspace(context.workspace_id)


@router.put("", response_model=WorkspaceResponse)
async def update_workspace(
    data: WorkspaceUpdate,
    context: WorkspaceContext = Depends(require_roles("owner")),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Rename the workspace (owner only)"""
    return service.update_workspace(context.workspace_id, data)


@router.get("/users", response_model=List[WorkspaceMember])
async def list_workspace_users(
    context: WorkspaceContext = Depends(get_workspace_context),
    service: WorkspaceService = Depends(get_workspace_service)
):
    return service.list_members(context.workspace_id)
