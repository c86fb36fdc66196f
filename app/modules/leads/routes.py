from fastapi import APIRouter, Depends, Response
from app.database.supabase_client import get_supabase
from app.modules.leads.schemas import (
    LeadCreate, LeadUpdate, LeadStageUpdate, LeadResponse,
    CustomFieldValue, CustomFieldValuesUpdate
)
from app.modules.leads.service import LeadService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/leads", tags=["leads"])


def get_lead_service(supabase: Client = Depends(get_supabase)) -> LeadService:
    return LeadService(supabase)


@router.get("", response_model=List[LeadResponse])
async def list_leads(
    search: Optional[str] = None,
    stage_id: Optional[str] = None,
    origin_id: Optional[str] = None,
    context: WorkspaceContext = Depends(require_permission("leads.view")),
    service: LeadService = Depends(get_lead_service)
):
    """Leads of the workspace, newest first, with their labels"""
    return service.list_leads(context.workspace_id, search=search, stage_id=stage_id, origin_id=origin_id)


@router.post("", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCreate,
    response: Response,
    context: WorkspaceContext = Depends(require_permission("leads.create")),
    service: LeadService = Depends(get_lead_service)
):
    """Create a lead; an existing lead with the same phone and origin is updated (200)"""
    lead, created = service.create_lead(data, context.workspace_id)
    if not created:
        response.status_code = 200
    return lead


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: str,
    context: WorkspaceContext = Depends(require_permission("leads.view")),
    service: LeadService = Depends(get_lead_service)
):
    return service.get_lead(lead_id, context.workspace_id)


@router.put("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: str,
    data: LeadUpdate,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: LeadService = Depends(get_lead_service)
):
    return service.update_lead(lead_id, data, context.workspace_id)


@router.patch("/{lead_id}/stage", response_model=LeadResponse)
async def update_lead_stage(
    lead_id: str,
    data: LeadStageUpdate,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: LeadService = Depends(get_lead_service)
):
    return service.update_stage(lead_id, data, context.workspace_id)


@router.delete("/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: str,
    context: WorkspaceContext = Depends(require_permission("leads.delete")),
    service: LeadService = Depends(get_lead_service)
):
    service.delete_lead(lead_id, context.workspace_id)
    return None


@router.get("/{lead_id}/custom-fields", response_model=List[CustomFieldValue])
async def get_lead_custom_fields(
    lead_id: str,
    context: WorkspaceContext = Depends(require_permission("leads.view")),
    service: LeadService = Depends(get_lead_service)
):
    return service.get_custom_fields(lead_id, context.workspace_id)


@router.put("/{lead_id}/custom-fields", response_model=List[CustomFieldValue])
async def set_lead_custom_fields(
    lead_id: str,
    body: CustomFieldValuesUpdate,
    context: WorkspaceContext = Depends(require_permission("leads.update")),
    service: LeadService = Depends(get_lead_service)
):
    """Replace the lead's contact field values"""
    return service.set_custom_fields(lead_id, body.values, context.workspace_id)
