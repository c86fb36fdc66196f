import re
import secrets
import logging
from datetime import datetime, timedelta, timezone
from supabase import Client
from fastapi import HTTPException
from postgrest.exceptions import APIError
from typing import Dict, Any, Optional, Tuple

from app.config.settings import settings
from app.core.dependencies import WorkspaceContext, get_user_permissions
from app.core.security import (
    get_password_hash, verify_password, create_access_token, mask_email
)
from app.core.tokens import (
    TokenService, InvalidTokenError,
    PURPOSE_VERIFICATION, PURPOSE_PASSWORD_RESET, PURPOSE_INVITATION
)
from app.integrations.mailer import Mailer, EmailDeliveryError
from app.modules.auth.schemas import (
    RegisterRequest, RegisterResponse, LoginRequest, TokenResponse, SessionUser,
    VerifyTokenResponse, MeResponse
)
from app.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If the email is registered, you will receive a link to reset your password"
GENERIC_RESEND_MESSAGE = "If the email is registered and pending verification, a new verification email has been sent"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def subdomain_from_email(email: str) -> str:
    local = email.split("@", 1)[0].lower()
    return re.sub(r"[^a-z0-9]", "", local) or "workspace"


def workspace_name_for(name: str) -> str:
    first_name = name.strip().split()[0] if name.strip() else "My"
    return f"{first_name}'s Workspace"


class AuthService:
    def __init__(self, supabase: Client, mailer: Optional[Mailer] = None):
        self.supabase = supabase
        self.mailer = mailer or Mailer()
        self.tokens = TokenService(supabase)

    def _find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("users")\
            .select("*")\
            .eq("email", email.lower())\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _unique_subdomain(self, base: str) -> str:
        candidate = base
        for _ in range(5):
            existing = self.supabase.table("workspaces")\
                .select("id")\
                .eq("subdomain", candidate)\
                .limit(1)\
                .execute()
            if not existing.data:
                return candidate
            candidate = f"{base}{secrets.token_hex(2)}"
        raise HTTPException(status_code=409, detail="Could not allocate a workspace subdomain")

    def _send_safely(self, send, *args, **kwargs) -> bool:
        """Email failures never fail the calling flow."""
        try:
            return bool(send(*args, **kwargs))
        except EmailDeliveryError as e:
            logger.error(f"Email delivery failed: {e}")
            return False

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Create a workspace and its pending owner, then send the verification email"""
        email = register_data.email.lower()
        if self._find_user_by_email(email):
            raise HTTPException(status_code=409, detail="Email already registered")

        try:
            workspace_result = self.supabase.table("workspaces").insert({
                "name": workspace_name_for(register_data.name),
                "subdomain": self._unique_subdomain(subdomain_from_email(email)),
            }).execute()
            if not workspace_result.data:
                raise HTTPException(status_code=500, detail="Failed to create workspace")
            workspace = workspace_result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Workspace creation failed for {mask_email(email)}: {e}")
            raise HTTPException(status_code=500, detail="Registration failed")

        try:
            user_result = self.supabase.table("users").insert({
                "workspace_id": workspace["id"],
                "email": email,
                "name": register_data.name.strip(),
                "password_hash": get_password_hash(register_data.password),
                "role": "owner",
                "status": "pending",
            }).execute()
            if not user_result.data:
                raise HTTPException(status_code=500, detail="Failed to create user")
            user = user_result.data[0]
        except Exception as e:
            # No multi-statement transactions through PostgREST: undo the workspace
            logger.error(f"User creation failed for {mask_email(email)}, removing workspace: {e}")
            self.supabase.table("workspaces").delete().eq("id", workspace["id"]).execute()
            if isinstance(e, (HTTPException, APIError)):
                raise
            raise HTTPException(status_code=500, detail="Registration failed")

        token = self.tokens.issue(
            PURPOSE_VERIFICATION, email,
            timedelta(hours=settings.verification_expire_hours),
            user_id=user["id"], workspace_id=workspace["id"],
        )
        self._send_safely(self.mailer.send_verification_email, email, token)
        logger.info(f"Registered {mask_email(email)} as owner of a new workspace")

        return RegisterResponse(
            user_id=user["id"],
            workspace_id=workspace["id"],
            email=email,
            status=user["status"],
            message="Registration successful. Check your email to verify your account."
        )

    def login(self, login_data: LoginRequest) -> Tuple[TokenResponse, timedelta]:
        """Check credentials and issue an access token bound to the user's workspace"""
        user = self._find_user_by_email(login_data.email)
        if not user or not verify_password(login_data.password, user.get("password_hash")):
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if user.get("status") != "active":
            raise HTTPException(status_code=401, detail="Inactive account")

        if login_data.remember:
            lifetime = timedelta(days=settings.remember_me_expire_days)
        else:
            lifetime = timedelta(minutes=settings.access_token_expire_minutes)
        access_token = create_access_token(user["id"], user["workspace_id"], lifetime)

        self.supabase.table("users")\
            .update({"last_login_at": _now_iso()})\
            .eq("id", user["id"])\
            .execute()

        response = TokenResponse(
            access_token=access_token,
            expires_in=int(lifetime.total_seconds()),
            user=SessionUser(
                id=user["id"],
                email=user["email"],
                name=user.get("name"),
                role=user.get("role") or "user",
                workspace_id=user["workspace_id"],
            ),
        )
        return response, lifetime

    def me(self, context: WorkspaceContext) -> MeResponse:
        workspace_result = self.supabase.table("workspaces")\
            .select("*")\
            .eq("id", context.workspace_id)\
            .limit(1)\
            .execute()
        return MeResponse(
            user=UserResponse(**context.user).model_dump(mode="json"),
            workspace=workspace_result.data[0] if workspace_result.data else None,
            permissions=get_user_permissions(context.user, self.supabase),
        )

    def verify_email(self, email: str, token: str) -> Dict[str, str]:
        """Consume a verification token and activate the pending user"""
        claimed = self.tokens.consume(PURPOSE_VERIFICATION, token, email)
        result = self.supabase.table("users")\
            .update({"status": "active", "email_verified_at": _now_iso(), "updated_at": _now_iso()})\
            .eq("id", claimed["user_id"])\
            .eq("email", email.lower())\
            .eq("status", "pending")\
            .execute()
        if not result.data:
            raise InvalidTokenError()
        logger.info(f"Email verified for {mask_email(email)}")
        return {"message": "Email verified successfully"}

    def verify_token(self, email: str, token: str, token_type: str) -> VerifyTokenResponse:
        purpose = PURPOSE_INVITATION if token_type == "invitation" else PURPOSE_VERIFICATION
        self.tokens.peek(purpose, token, email)
        return VerifyTokenResponse(valid=True, email=email.lower())

    def resend_verification(self, email: str) -> Dict[str, str]:
        user = self._find_user_by_email(email)
        if user and user.get("status") == "pending":
            token = self.tokens.issue(
                PURPOSE_VERIFICATION, user["email"],
                timedelta(hours=settings.verification_expire_hours),
                user_id=user["id"], workspace_id=user["workspace_id"],
            )
            self._send_safely(self.mailer.send_verification_email, user["email"], token)
        else:
            logger.info(f"Resend verification requested for non-pending address {mask_email(email)}")
        return {"message": GENERIC_RESEND_MESSAGE}

    def forgot_password(self, email: str) -> Dict[str, str]:
        user = self._find_user_by_email(email)
        if user:
            token = self.tokens.issue(
                PURPOSE_PASSWORD_RESET, user["email"],
                timedelta(minutes=settings.password_reset_expire_minutes),
                user_id=user["id"], workspace_id=user["workspace_id"],
            )
            self._send_safely(self.mailer.send_password_reset_email, user["email"], token)
        else:
            logger.info(f"Password reset requested for unknown address {mask_email(email)}")
        return {"message": GENERIC_RESET_MESSAGE}

    def reset_password(self, token: str, password: str) -> Dict[str, str]:
        claimed = self.tokens.consume(PURPOSE_PASSWORD_RESET, token)
        result = self.supabase.table("users")\
            .update({"password_hash": get_password_hash(password), "updated_at": _now_iso()})\
            .eq("id", claimed["user_id"])\
            .execute()
        if not result.data:
            raise InvalidTokenError()
        logger.info(f"Password reset for {mask_email(claimed.get('email'))}")
        return {"message": "Password updated successfully"}

    def accept_invitation(self, email: str, token: str, password: str) -> Dict[str, str]:
        claimed = self.tokens.consume(PURPOSE_INVITATION, token, email)
        now = _now_iso()
        result = self.supabase.table("users")\
            .update({
                "password_hash": get_password_hash(password),
                "status": "active",
                "email_verified_at": now,
                "updated_at": now,
            })\
            .eq("id", claimed["user_id"])\
            .eq("email", email.lower())\
            .execute()
        if not result.data:
            raise InvalidTokenError()
        logger.info(f"Invitation accepted by {mask_email(email)}")
        return {"message": "Invitation accepted. You can now sign in."}
