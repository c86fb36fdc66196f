from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.dispara_ja_client import DisparaJaClient, get_dispara_ja_client
from app.integrations.whatsapp_cloud_client import WhatsAppCloudClient, get_whatsapp_cloud_client
from app.modules.conversations.delivery import ChannelDispatcher
from app.modules.conversations.schemas import (
    ConversationCreate, ConversationResponse, MessageCreate, MessageResponse, ReadResponse
)
from app.modules.conversations.service import ConversationService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(
    supabase: Client = Depends(get_supabase),
    dispara_ja: DisparaJaClient = Depends(get_dispara_ja_client),
    whatsapp_cloud: WhatsAppCloudClient = Depends(get_whatsapp_cloud_client)
) -> ConversationService:
    return ConversationService(supabase, ChannelDispatcher(supabase, dispara_ja, whatsapp_cloud))


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    context: WorkspaceContext = Depends(require_permission("conversations.view")),
    service: ConversationService = Depends(get_conversation_service)
):
    """Conversations with lead, last message and unread count, most recent first"""
    return service.list_conversations(context.workspace_id)


@router.post("", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    data: ConversationCreate,
    context: WorkspaceContext = Depends(require_permission("conversations.reply")),
    service: ConversationService = Depends(get_conversation_service)
):
    return service.create_conversation(data, context.workspace_id)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    context: WorkspaceContext = Depends(require_permission("conversations.view")),
    service: ConversationService = Depends(get_conversation_service)
):
    return service.get_conversation(conversation_id, context.workspace_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: str,
    context: WorkspaceContext = Depends(require_permission("conversations.view")),
    service: ConversationService = Depends(get_conversation_service)
):
    return service.list_messages(conversation_id, context.workspace_id)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    context: WorkspaceContext = Depends(require_permission("conversations.reply")),
    service: ConversationService = Depends(get_conversation_service)
):
    """Store a message; manual operator messages are also sent through the channel"""
    return service.send_message(conversation_id, data, context.workspace_id)


@router.post("/{conversation_id}/read", response_model=ReadResponse)
async def mark_read(
    conversation_id: str,
    context: WorkspaceContext = Depends(require_permission("conversations.view")),
    service: ConversationService = Depends(get_conversation_service)
):
    return service.mark_read(conversation_id, context.workspace_id)


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    context: WorkspaceContext = Depends(require_permission("conversations.delete")),
    service: ConversationService = Depends(get_conversation_service)
):
    service.delete_conversation(conversation_id, context.workspace_id)
    return None
