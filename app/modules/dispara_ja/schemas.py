from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

ConnectionStatus = Literal["ativo", "pendente", "inativo"]


class ConnectRequest(BaseModel):
    secret: str = Field(min_length=1)
    agent_id: str = Field(min_length=1)
    token: Optional[str] = None
    sid: Optional[str] = None
    phone_number: Optional[str] = None
    unique: Optional[str] = None


class ConnectResponse(BaseModel):
    success: bool = True
    connection_id: str
    message: str


class ConnectionResponse(BaseModel):
    id: str
    workspace_id: str
    agent_id: str
    agent_name: Optional[str] = None
    provider: str = "DISPARA_JA"
    sid: Optional[str] = None
    phone_number: Optional[str] = None
    unique: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionUpdate(BaseModel):
    status: Optional[ConnectionStatus] = None
    phone_number: Optional[str] = None
    unique: Optional[str] = None


class LogRequest(BaseModel):
    connection_id: str
    message: str = Field(min_length=1)
    type: str = "info"


class QRCodeRequest(BaseModel):
    secret: str = Field(min_length=1)
    sid: Optional[str] = None


class QRCodeResponse(BaseModel):
    qr_image_link: str
    info_link: str
    data: Dict[str, Any] = {}


class StatusItem(BaseModel):
    id: str
    status: ConnectionStatus
    phone_number: Optional[str] = None


class StatusBatchRequest(BaseModel):
    connections: List[StatusItem]


class StatusItemResult(BaseModel):
    id: str
    success: bool
    error: Optional[str] = None


class StatusBatchResponse(BaseModel):
    results: List[StatusItemResult]


class VerifyConnectionResponse(BaseModel):
    connected: bool
    status: str
    connection_id: Optional[str] = None
    phone_number: Optional[str] = None


class WebhookResult(BaseModel):
    received: bool = True
    stored: bool = False
    message_id: Optional[str] = None


class WebhookCheckResponse(BaseModel):
    connection_id: str
    status: str
