from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.tags.schemas import TagCreate, TagUpdate, TagResponse
from app.modules.tags.service import TagService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/tags", tags=["tags"])


def get_tag_service(supabase: Client = Depends(get_supabase)) -> TagService:
    return TagService(supabase)


@router.get("", response_model=List[TagResponse])
async def list_tags(
    lead_id: Optional[str] = None,
    context: WorkspaceContext = Depends(require_permission("leads.view")),
    service: TagService = Depends(get_tag_service)
):
    """Tags of the workspace with usage counts, optionally only those of a lead"""
    return service.list_tags(context.workspace_id, lead_id=lead_id)


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(
    data: TagCreate,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: TagService = Depends(get_tag_service)
):
    return service.create_tag(data, context.workspace_id)


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: str,
    context: WorkspaceContext = Depends(require_permission("leads.view")),
    service: TagService = Depends(get_tag_service)
):
    return service.get_tag(tag_id, context.workspace_id)


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    data: TagUpdate,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: TagService = Depends(get_tag_service)
):
    return service.update_tag(tag_id, data, context.workspace_id)


@router.delete("/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: str,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: TagService = Depends(get_tag_service)
):
    service.delete_tag(tag_id, context.workspace_id)
    return None
