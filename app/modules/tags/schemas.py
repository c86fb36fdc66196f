from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class TagCreate(BaseModel):
    name: str = Field(min_length=1)
    color: str = Field(min_length=1)
    description: Optional[str] = None


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class TagResponse(BaseModel):
    id: str
    workspace_id: str
    name: str
    color: str
    description: Optional[str] = None
    usage_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
