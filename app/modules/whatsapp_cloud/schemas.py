from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class WhatsAppCloudCreate(BaseModel):
    phone_number_id: str = Field(min_length=1)
    access_token: str = Field(min_length=1)
    agent_id: str = Field(min_length=1)
    display_phone_number: Optional[str] = None


class WhatsAppCloudStatusUpdate(BaseModel):
    status: Literal["active", "inactive"]


class WhatsAppCloudResponse(BaseModel):
    id: str
    workspace_id: str
    agent_id: str
    agent_name: Optional[str] = None
    phone_number_id: str
    display_phone_number: Optional[str] = None
    webhook_url: str
    verify_token: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WebhookResult(BaseModel):
    received: int = 0
    stored: int = 0
