from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from app.database.supabase_client import get_supabase
from app.modules.whatsapp_cloud.schemas import (
    WhatsAppCloudCreate, WhatsAppCloudStatusUpdate, WhatsAppCloudResponse, WebhookResult
)
from app.modules.whatsapp_cloud.service import WhatsAppCloudService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import Any, Dict, List, Optional

router = APIRouter(prefix="/whatsapp-cloud", tags=["whatsapp-cloud"])

# Called by Meta, mounted outside /api/v1 and without authentication
webhook_router = APIRouter(prefix="/webhook/whatsapp-cloud", tags=["webhooks"])


def get_whatsapp_cloud_service(supabase: Client = Depends(get_supabase)) -> WhatsAppCloudService:
    return WhatsAppCloudService(supabase)


@router.get("", response_model=List[WhatsAppCloudResponse])
async def list_connections(
    context: WorkspaceContext = Depends(require_permission("settings.view")),
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    return service.list_connections(context.workspace_id)


@router.post("", response_model=WhatsAppCloudResponse, status_code=201)
async def create_connection(
    data: WhatsAppCloudCreate,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    """Register a WhatsApp Cloud number for an agent (starts inactive)"""
    return service.create_connection(data, context.workspace_id)


@router.patch("/{connection_id}", response_model=WhatsAppCloudResponse)
async def update_status(
    connection_id: str,
    data: WhatsAppCloudStatusUpdate,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    return service.update_status(connection_id, data.status, context.workspace_id)


@router.delete("/{connection_id}", status_code=204)
async def delete_connection(
    connection_id: str,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    service.delete_connection(connection_id, context.workspace_id)
    return None


@webhook_router.get("/{phone_number_id}", response_class=PlainTextResponse)
async def verify_webhook(
    phone_number_id: str,
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    """Meta subscription handshake"""
    return service.verify_webhook(phone_number_id, mode, token, challenge)


@webhook_router.post("/{phone_number_id}", response_model=WebhookResult)
async def receive_webhook(
    phone_number_id: str,
    payload: Dict[str, Any],
    service: WhatsAppCloudService = Depends(get_whatsapp_cloud_service)
):
    return service.ingest(phone_number_id, payload)
