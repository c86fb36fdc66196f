import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional

from app.core.workspace_guard import get_owned_or_404
from app.integrations.openai_client import OpenAIClientFactory, OpenAIGateway
from app.modules.agents.schemas import (
    AgentCreate, AgentUpdate, AgentResponse, AssistantSummary
)

logger = logging.getLogger(__name__)

AGENT_NOT_FOUND = "Agent not found"
DEFAULT_VOICE_TONE = "Profissional e amigável"


def build_assistant_instructions(agent: Dict[str, Any]) -> str:
    """Assemble the assistant prompt from the agent's profile fields."""
    def value(key: str, default: str = "") -> str:
        return agent.get(key) or default

    sections = [
        f"# {value('name')}",
        value("description"),
        "",
        value("system_prompt"),
        "",
        value("personality_objective"),
        "",
        value("agent_skills"),
        "",
        value("restrictions"),
        "",
        "## Informações da Empresa",
        f"Nome: {value('company_name')}",
        f"Setor: {value('company_sector')}",
        f"Website: {value('company_website')}",
        f"Descrição: {value('company_description')}",
        "",
        "## Tom de Voz",
        value("voice_tone", DEFAULT_VOICE_TONE),
        "",
        "## Função do Agente",
        value("agent_function"),
        "",
        "## Informações do Produto",
        value("product_info"),
        "",
        "## Mensagem Inicial Sugerida",
        value("initial_message"),
    ]
    return "\n".join(sections).strip()


def assistant_params(agent: Dict[str, Any]) -> Dict[str, Any]:
    params = {
        "name": agent["name"],
        "instructions": build_assistant_instructions(agent),
        "model": agent.get("model") or "gpt-4o",
        "temperature": agent.get("temperature") if agent.get("temperature") is not None else 0.7,
        "top_p": agent.get("top_p") if agent.get("top_p") is not None else 1.0,
        "tools": [],
    }
    if agent.get("vector_store_id"):
        params["tools"] = [{"type": "file_search"}]
        params["tool_resources"] = {"file_search": {"vector_store_ids": [agent["vector_store_id"]]}}
    return params


class AgentService:
    def __init__(self, supabase: Client, openai_factory: OpenAIClientFactory):
        self.supabase = supabase
        self.openai_factory = openai_factory

    def _gateway(self, workspace_id: str) -> OpenAIGateway:
        return self.openai_factory.for_workspace(self.supabase, workspace_id)

    def get_agent_row(self, agent_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "agents", agent_id, workspace_id, detail=AGENT_NOT_FOUND)

    def _check_vector_store(self, vector_store_id: Optional[str], workspace_id: str) -> None:
        if not vector_store_id:
            return
        get_owned_or_404(
            self.supabase, "vector_stores", vector_store_id, workspace_id,
            detail="Vector store not found", id_column="openai_id"
        )

    def _set_assistant_id(self, agent_id: str, workspace_id: str, assistant_id: Optional[str]) -> Dict[str, Any]:
        result = self.supabase.table("agents")\
            .update({"assistant_id": assistant_id, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", agent_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return result.data[0]

    def list_agents(self, workspace_id: str) -> List[AgentResponse]:
        result = self.supabase.table("agents")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .order("created_at", desc=True)\
            .execute()
        return [AgentResponse(**row) for row in result.data or []]

    def get_agent(self, agent_id: str, workspace_id: str) -> AgentResponse:
        return AgentResponse(**self.get_agent_row(agent_id, workspace_id))

    def create_agent(self, data: AgentCreate, workspace_id: str) -> AgentResponse:
        self._check_vector_store(data.vector_store_id, workspace_id)
        if data.create_assistant:
            self._gateway(workspace_id)
        payload = data.model_dump(exclude={"create_assistant"})
        payload["name"] = data.name.strip()
        payload["workspace_id"] = workspace_id
        result = self.supabase.table("agents").insert(payload).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create agent")
        agent = result.data[0]
        logger.info(f"Agent '{agent['name']}' created in workspace {workspace_id}")
        if data.create_assistant:
            try:
                agent = self.create_assistant(agent["id"], workspace_id)
            except HTTPException:
                self.supabase.table("agents").delete().eq("id", agent["id"]).execute()
                raise
        return AgentResponse(**agent)

    def update_agent(self, agent_id: str, data: AgentUpdate, workspace_id: str) -> AgentResponse:
        """Update the agent and keep its OpenAI assistant in sync"""
        self.get_agent_row(agent_id, workspace_id)
        update_data = data.model_dump(exclude_unset=True)
        if "vector_store_id" in update_data:
            self._check_vector_store(update_data["vector_store_id"], workspace_id)
        if not update_data:
            return self.get_agent(agent_id, workspace_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("agents")\
            .update(update_data)\
            .eq("id", agent_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        agent = result.data[0]
        if agent.get("assistant_id"):
            params = assistant_params(agent)
            if not agent.get("vector_store_id"):
                params["tool_resources"] = {"file_search": {"vector_store_ids": []}}
            self._gateway(workspace_id).update_assistant(agent["assistant_id"], **params)
            logger.info(f"Assistant {agent['assistant_id']} synced with agent {agent_id}")
        return AgentResponse(**agent)

    def delete_agent(self, agent_id: str, workspace_id: str) -> bool:
        """Delete the agent, its channel connections and (best effort) its assistant"""
        agent = self.get_agent_row(agent_id, workspace_id)
        if agent.get("assistant_id"):
            try:
                self._gateway(workspace_id).delete_assistant(agent["assistant_id"])
            except HTTPException as e:
                logger.warning(f"Could not delete assistant {agent['assistant_id']}: {e.detail}")
        self.supabase.table("conversations")\
            .update({"agent_id": None})\
            .eq("agent_id", agent_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        for table in ("dispara_ja_connections", "whatsapp_cloud_connections"):
            self.supabase.table(table)\
                .delete()\
                .eq("agent_id", agent_id)\
                .eq("workspace_id", workspace_id)\
                .execute()
        result = self.supabase.table("agents")\
            .delete()\
            .eq("id", agent_id)\
            .eq("workspace_id", workspace_id)\
            .execute()
        return len(result.data) > 0

    def create_assistant(self, agent_id: str, workspace_id: str) -> Dict[str, Any]:
        """Create the OpenAI assistant for an agent and store its id"""
        agent = self.get_agent_row(agent_id, workspace_id)
        assistant = self._gateway(workspace_id).create_assistant(**assistant_params(agent))
        logger.info(f"Assistant {assistant['id']} created for agent {agent_id}")
        return self._set_assistant_id(agent_id, workspace_id, assistant["id"])

    def list_assistants(self, workspace_id: str) -> List[AssistantSummary]:
        """Assistants referenced by agents of the workspace"""
        agents = self.supabase.table("agents")\
            .select("id, name, assistant_id")\
            .eq("workspace_id", workspace_id)\
            .execute().data or []
        agents = [a for a in agents if a.get("assistant_id")]
        if not agents:
            return []
        gateway = self._gateway(workspace_id)
        summaries = []
        for agent in agents:
            try:
                assistant = gateway.retrieve_assistant(agent["assistant_id"])
            except HTTPException as e:
                if e.status_code != 404:
                    raise
                logger.warning(f"Assistant {agent['assistant_id']} of agent {agent['id']} no longer exists")
                continue
            summaries.append(AssistantSummary(
                id=assistant["id"],
                name=assistant.get("name"),
                model=assistant.get("model"),
                agent_id=agent["id"],
                agent_name=agent["name"],
                tools=assistant.get("tools") or [],
            ))
        return summaries

    def delete_assistant(self, assistant_id: str, workspace_id: str) -> bool:
        """Delete an assistant owned by one of the workspace's agents"""
        agent = get_owned_or_404(
            self.supabase, "agents", assistant_id, workspace_id,
            detail="Assistant not found", id_column="assistant_id"
        )
        self._gateway(workspace_id).delete_assistant(assistant_id)
        self._set_assistant_id(agent["id"], workspace_id, None)
        logger.info(f"Assistant {assistant_id} deleted, agent {agent['id']} detached")
        return True
