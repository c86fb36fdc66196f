from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal, Dict, Any
from datetime import datetime

Role = Literal["owner", "admin", "user"]
UserStatus = Literal["pending", "active"]


class UserResponse(BaseModel):
    id: str
    workspace_id: str
    email: str
    name: Optional[str] = None
    role: str
    status: str
    permission_group_id: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    limit: int
    pages: int


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role = "user"
    permission_group_id: Optional[str] = None


class UserCreatedResponse(BaseModel):
    user: UserResponse
    temp_password: str
    invitation_sent: bool


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    permission_group_id: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)


class PermissionGroupSummary(BaseModel):
    id: str
    name: str


class MyPermissionsResponse(BaseModel):
    role: str
    permissions: Dict[str, Any]
    permission_group: Optional[PermissionGroupSummary] = None


class UserPermissionsResponse(BaseModel):
    user_id: str
    role: str
    permissions: Dict[str, Any]
    custom_permissions: Dict[str, Any] = {}


class UserPermissionsUpdate(BaseModel):
    permissions: Dict[str, Any]
