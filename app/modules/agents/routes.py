from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIClientFactory, get_openai_factory
from app.modules.agents.schemas import (
    AgentCreate, AgentUpdate, AgentResponse, AssistantCreateRequest, AssistantSummary
)
from app.modules.agents.service import AgentService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/agents", tags=["agents"])


def get_agent_service(
    supabase: Client = Depends(get_supabase),
    openai_factory: OpenAIClientFactory = Depends(get_openai_factory)
) -> AgentService:
    return AgentService(supabase, openai_factory)


# Assistant routes are declared before /{agent_id} so the literal path wins
@router.post("/openai-assistants", response_model=AgentResponse, status_code=201)
async def create_openai_assistant(
    body: AssistantCreateRequest,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: AgentService = Depends(get_agent_service)
):
    """Create the OpenAI assistant of an agent"""
    return service.create_assistant(body.agent_id, context.workspace_id)


@router.get("/openai-assistants", response_model=List[AssistantSummary])
async def list_openai_assistants(
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: AgentService = Depends(get_agent_service)
):
    return service.list_assistants(context.workspace_id)


@router.delete("/openai-assistants/{assistant_id}", status_code=204)
async def delete_openai_assistant(
    assistant_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.delete")),
    service: AgentService = Depends(get_agent_service)
):
    service.delete_assistant(assistant_id, context.workspace_id)
    return None


@router.get("", response_model=List[AgentResponse])
async def list_agents(
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: AgentService = Depends(get_agent_service)
):
    return service.list_agents(context.workspace_id)


@router.post("", response_model=AgentResponse, status_code=201)
async def create_agent(
    data: AgentCreate,
    context: WorkspaceContext = Depends(require_permission("agents.create")),
    service: AgentService = Depends(get_agent_service)
):
    """Create an agent, optionally with its OpenAI assistant"""
    return service.create_agent(data, context.workspace_id)


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: AgentService = Depends(get_agent_service)
):
    return service.get_agent(agent_id, context.workspace_id)


@router.put("/{agent_id}", response_model=AgentResponse)
async def update_agent(
    agent_id: str,
    data: AgentUpdate,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: AgentService = Depends(get_agent_service)
):
    return service.update_agent(agent_id, data, context.workspace_id)


@router.delete("/{agent_id}", status_code=204)
async def delete_agent(
    agent_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.delete")),
    service: AgentService = Depends(get_agent_service)
):
    service.delete_agent(agent_id, context.workspace_id)
    return None
