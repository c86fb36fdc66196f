from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIClientFactory, get_openai_factory
from app.modules.integrations.schemas import OpenAIKeyRequest, OpenAIKeyStatus
from app.modules.integrations.service import IntegrationService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client

router = APIRouter(prefix="/integrations", tags=["integrations"])


def get_integration_service(
    supabase: Client = Depends(get_supabase),
    openai_factory: OpenAIClientFactory = Depends(get_openai_factory)
) -> IntegrationService:
    return IntegrationService(supabase, openai_factory)


@router.post("/openai/key", response_model=OpenAIKeyStatus)
async def save_openai_key(
    body: OpenAIKeyRequest,
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: IntegrationService = Depends(get_integration_service)
):
    """Validate and store the workspace's OpenAI API key"""
    return service.save_openai_key(body.api_key, context.workspace_id)


@router.get("/openai/key", response_model=OpenAIKeyStatus)
async def get_openai_key_status(
    context: WorkspaceContext = Depends(require_permission("settings.view")),
    service: IntegrationService = Depends(get_integration_service)
):
    return service.get_openai_key_status(context.workspace_id)


@router.delete("/openai/key", response_model=OpenAIKeyStatus)
async def delete_openai_key(
    context: WorkspaceContext = Depends(require_permission("settings.update")),
    service: IntegrationService = Depends(get_integration_service)
):
    return service.delete_openai_key(context.workspace_id)
