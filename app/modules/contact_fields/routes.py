from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.contact_fields.schemas import (
    ContactFieldCreate, ContactFieldUpdate, ContactFieldResponse
)
from app.modules.contact_fields.service import ContactFieldService
from app.core.dependencies import WorkspaceContext, get_workspace_context, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/contact-fields", tags=["contact-fields"])


def get_contact_field_service(supabase: Client = Depends(get_supabase)) -> ContactFieldService:
    return ContactFieldService(supabase)


@router.get("", response_model=List[ContactFieldResponse])
async def list_fields(
    context: WorkspaceContext = Depends(get_workspace_context),
    service: ContactFieldService = Depends(get_contact_field_service)
):
    """Custom lead fields of the workspace, in display order"""
    return service.list_fields(context.workspace_id)


@router.post("", response_model=ContactFieldResponse, status_code=201)
async def create_field(
    data: ContactFieldCreate,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: ContactFieldService = Depends(get_contact_field_service)
):
    return service.create_field(data, context.workspace_id)


@router.put("/{field_id}", response_model=ContactFieldResponse)
async def update_field(
    field_id: str,
    data: ContactFieldUpdate,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: ContactFieldService = Depends(get_contact_field_service)
):
    return service.update_field(field_id, data, context.workspace_id)


@router.delete("/{field_id}", status_code=204)
async def delete_field(
    field_id: str,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: ContactFieldService = Depends(get_contact_field_service)
):
    service.delete_field(field_id, context.workspace_id)
    return None
