from pydantic import BaseModel, Field
from typing import Optional, Literal, List, Dict, Any
from datetime import datetime

AgentModel = Literal["gpt-4o", "gpt-4o-mini", "gpt-4-turbo"]
DEFAULT_IMAGE_URL = "/images/avatar/avatar.png"


class AgentBase(BaseModel):
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    internal_name: Optional[str] = None
    initial_message: Optional[str] = None
    voice_tone: Optional[str] = None
    company_name: Optional[str] = None
    company_sector: Optional[str] = None
    company_website: Optional[str] = None
    company_description: Optional[str] = None
    personality_objective: Optional[str] = None
    agent_skills: Optional[str] = None
    agent_function: Optional[str] = None
    product_info: Optional[str] = None
    restrictions: Optional[str] = None
    vector_store_id: Optional[str] = None


class AgentCreate(AgentBase):
    name: str = Field(min_length=1)
    image_url: str = DEFAULT_IMAGE_URL
    model: AgentModel = "gpt-4-turbo"
    language: str = "pt-BR"
    timezone: str = "America/Sao_Paulo"
    temperature: float = Field(default=0.7, ge=0, le=2)
    frequency_penalty: float = Field(default=0, ge=-2, le=2)
    presence_penalty: float = Field(default=0, ge=-2, le=2)
    top_p: float = Field(default=1.0, ge=0, le=1)
    max_messages: int = Field(default=20, ge=1)
    max_tokens: int = Field(default=5000, ge=1)
    response_format: str = "text"
    create_assistant: bool = False


class AgentUpdate(AgentBase):
    name: Optional[str] = Field(default=None, min_length=1)
    image_url: Optional[str] = None
    model: Optional[AgentModel] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    max_messages: Optional[int] = Field(default=None, ge=1)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    response_format: Optional[str] = None


class AgentResponse(AgentBase):
    id: str
    workspace_id: str
    name: str
    image_url: Optional[str] = None
    model: str
    language: Optional[str] = None
    timezone: Optional[str] = None
    temperature: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    top_p: Optional[float] = None
    max_messages: Optional[int] = None
    max_tokens: Optional[int] = None
    response_format: Optional[str] = None
    assistant_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssistantCreateRequest(BaseModel):
    agent_id: str


class AssistantSummary(BaseModel):
    id: str
    name: Optional[str] = None
    model: Optional[str] = None
    agent_id: str
    agent_name: str
    tools: List[Dict[str, Any]] = []
