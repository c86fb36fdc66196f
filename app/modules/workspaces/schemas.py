from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class WorkspaceResponse(BaseModel):
    id: str
    name: str
    subdomain: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkspaceUpdate(BaseModel):
    name: str = Field(min_length=1)


class WorkspaceMember(BaseModel):
    id: str
    name: str
    email: str
    role: str
    photo: Optional[str] = None
