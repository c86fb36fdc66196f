from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal, Dict, Any


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class RegisterResponse(BaseModel):
    user_id: str
    workspace_id: str
    email: str
    status: str
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    remember: bool = False


class SessionUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    workspace_id: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUser


class EmailTokenRequest(BaseModel):
    email: EmailStr
    token: str = Field(min_length=1)


class VerifyTokenRequest(EmailTokenRequest):
    type: Literal["verification", "invitation"] = "verification"


class VerifyTokenResponse(BaseModel):
    valid: bool
    email: str


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)


class AcceptInvitationRequest(EmailTokenRequest):
    password: str = Field(min_length=6)


class MessageResponse(BaseModel):
    message: str


class MeResponse(BaseModel):
    user: Dict[str, Any]
    workspace: Optional[Dict[str, Any]] = None
    permissions: Dict[str, Any]
