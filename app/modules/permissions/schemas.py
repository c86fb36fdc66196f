from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Any
from datetime import datetime


class PermissionCreate(BaseModel):
    key: str = Field(min_length=3, pattern=r"^[A-Za-z0-9_]+(\.[A-Za-z0-9_]+)+$")  # dot path, e.g. "leads.export"
    name: str = Field(min_length=3)
    description: Optional[str] = None
    category: str = Field(min_length=2)
    subcategory: Optional[str] = None
    default_value: bool = False


class PermissionResponse(BaseModel):
    id: str
    key: str
    name: str
    description: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    default_value: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# category -> subcategory ("default" when none) -> permissions
GroupedPermissions = Dict[str, Dict[str, List[PermissionResponse]]]


class RoleDefaultsResponse(BaseModel):
    roles: Dict[str, Dict[str, Any]]
