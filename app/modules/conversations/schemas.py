from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Any, Dict
from datetime import datetime

from app.modules.leads.schemas import LabelResponse

Channel = Literal["dispara_ja", "whatsapp_cloud"]
Sender = Literal["user", "agent", "human"]


class ConversationCreate(BaseModel):
    lead_id: str
    channel: Optional[Channel] = None
    agent_id: Optional[str] = None


class ConversationLead(BaseModel):
    id: str
    name: Optional[str] = None
    phone: str
    photo: Optional[str] = None


class ConversationResponse(BaseModel):
    id: str
    workspace_id: str
    lead_id: str
    agent_id: Optional[str] = None
    channel: Optional[str] = None
    status: Optional[str] = None
    lead: Optional[ConversationLead] = None
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    labels: List[LabelResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    content: str = Field(min_length=1)
    sender: Sender = "human"
    is_manual: bool = True
    metadata: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    content: str
    sender: str
    is_manual: bool = False
    read: bool = False
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReadResponse(BaseModel):
    conversation_id: str
    marked: int
