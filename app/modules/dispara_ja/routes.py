from fastapi import APIRouter, Depends, Request
from app.database.supabase_client import get_supabase
from app.integrations.dispara_ja_client import DisparaJaClient, get_dispara_ja_client, DEFAULT_SID
from app.modules.dispara_ja.schemas import (
    ConnectRequest, ConnectResponse, ConnectionResponse, ConnectionUpdate, LogRequest,
    QRCodeRequest, QRCodeResponse, StatusBatchRequest, StatusBatchResponse,
    VerifyConnectionResponse, WebhookResult, WebhookCheckResponse
)
from app.modules.dispara_ja.service import DisparaJaService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/dispara-ja", tags=["dispara-ja"])

# Public, called by Dispara-Já; authenticated by the connection secret
webhook_router = APIRouter(prefix="/webhook/dispara-ja", tags=["webhooks"])


def get_dispara_ja_service(
    supabase: Client = Depends(get_supabase),
    client: DisparaJaClient = Depends(get_dispara_ja_client)
) -> DisparaJaService:
    return DisparaJaService(supabase, client)


@router.post("/connect", response_model=ConnectResponse)
async def connect(
    data: ConnectRequest,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    """Save the Dispara-Já connection of an agent"""
    return service.connect(data, context.workspace_id)


@router.get("/connections", response_model=List[ConnectionResponse])
async def list_connections(
    context: WorkspaceContext = Depends(require_permission("settings.view")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    return service.list_connections(context.workspace_id)


@router.put("/connections/{connection_id}", response_model=ConnectionResponse)
async def update_connection(
    connection_id: str,
    data: ConnectionUpdate,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    return service.update_connection(connection_id, data, context.workspace_id)


@router.delete("/connections/{connection_id}", status_code=204)
async def delete_connection(
    connection_id: str,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    service.delete_connection(connection_id, context.workspace_id)
    return None


@router.post("/log", status_code=201)
async def add_log(
    data: LogRequest,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    return service.add_log(data, context.workspace_id)


@router.post("/qrcode", response_model=QRCodeResponse)
async def generate_qrcode(
    data: QRCodeRequest,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    """Request a pairing QR code from Dispara-Já"""
    return service.generate_qrcode(data.secret, data.sid)


@router.post("/update-status", response_model=StatusBatchResponse)
async def update_statuses(
    data: StatusBatchRequest,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    return service.update_statuses(data.connections, context.workspace_id)


@router.get("/verify-connection", response_model=VerifyConnectionResponse)
async def verify_connection(
    info_link: str,
    secret: str,
    agent_id: str,
    sid: str = DEFAULT_SID,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    """Check whether the QR code was scanned and store the paired number"""
    return service.verify_connection(info_link, secret, sid, agent_id, context.workspace_id)


@webhook_router.get("/{connection_id}", response_model=WebhookCheckResponse)
async def check_webhook(
    connection_id: str,
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    return service.check_webhook(connection_id)


@webhook_router.post("/{connection_id}", response_model=WebhookResult)
async def receive_webhook(
    connection_id: str,
    request: Request,
    service: DisparaJaService = Depends(get_dispara_ja_service)
):
    """Inbound events, posted as form data or JSON"""
    if "application/json" in request.headers.get("content-type", ""):
        payload = await request.json()
    else:
        payload = dict(await request.form())
    if not isinstance(payload, dict):
        payload = {}
    return service.ingest(connection_id, payload)
