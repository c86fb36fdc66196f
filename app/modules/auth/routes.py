from fastapi import APIRouter, Depends, Request, Response
from app.config import settings
from app.core.dependencies import WorkspaceContext, get_workspace_context
from app.core.rate_limit import limiter
from app.database.supabase_client import get_supabase
from app.integrations.mailer import Mailer, get_mailer
from app.modules.auth.schemas import (
    RegisterRequest, RegisterResponse, LoginRequest, TokenResponse,
    EmailTokenRequest, VerifyTokenRequest, VerifyTokenResponse, EmailRequest,
    ResetPasswordRequest, AcceptInvitationRequest, MessageResponse, MeResponse
)
from app.modules.auth.service import AuthService
from supabase import Client

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    mailer: Mailer = Depends(get_mailer)
) -> AuthService:
    return AuthService(supabase, mailer)


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new workspace and its owner (pending until the email is verified)"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token (also set as an httponly cookie)"""
    token_response, lifetime = service.login(login_data)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token_response.access_token,
        max_age=int(lifetime.total_seconds()) if login_data.remember else None,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return token_response


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Logout: access tokens are stateless, so the session cookie is cleared"""
    response.delete_cookie(settings.auth_cookie_name)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_current_user(
    context: WorkspaceContext = Depends(get_workspace_context),
    service: AuthService = Depends(get_auth_service)
):
    """Current user, workspace and effective permissions (for frontend UI)"""
    return service.me(context)


@router.post("/verify-email", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
async def verify_email(
    request: Request,
    data: EmailTokenRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.verify_email(data.email, data.token)


@router.post("/verify-token", response_model=VerifyTokenResponse)
@limiter.limit(settings.auth_rate_limit)
async def verify_token(
    request: Request,
    data: VerifyTokenRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Check a verification/invitation token without consuming it"""
    return service.verify_token(data.email, data.token, data.type)


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
async def resend_verification(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.resend_verification(data.email)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
async def forgot_password(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Always answers with the same message, whether or not the email exists"""
    return service.forgot_password(data.email)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.reset_password(data.token, data.password)


@router.post("/accept-invitation", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
async def accept_invitation(
    request: Request,
    data: AcceptInvitationRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.accept_invitation(data.email, data.token, data.password)
