from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class GroupItemInput(BaseModel):
    permission_id: str
    enabled: bool = True


class PermissionGroupCreate(BaseModel):
    name: str = Field(min_length=3)
    description: Optional[str] = None
    is_default: bool = False
    is_custom: bool = True
    permission_ids: List[str] = []  # granted (enabled=True)
    items: List[GroupItemInput] = []  # explicit grants/revocations, win over permission_ids


class PermissionGroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    is_default: Optional[bool] = None
    permission_ids: Optional[List[str]] = None
    items: Optional[List[GroupItemInput]] = None


class GroupItemResponse(BaseModel):
    permission_id: str
    key: str
    name: str
    enabled: bool


class PermissionGroupResponse(BaseModel):
    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    is_custom: bool = True
    items: List[GroupItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
