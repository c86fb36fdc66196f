import math
import logging
from datetime import datetime, timedelta, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, Optional

from app.config.settings import settings
from app.core.dependencies import WorkspaceContext, get_user_permissions, context_allows
from app.core.permissions import flatten_permissions, is_superuser_role
from app.core.security import get_password_hash, generate_temp_password, mask_email
from app.core.tokens import TokenService, PURPOSE_INVITATION
from app.core.workspace_guard import get_owned_or_404, find_owned
from app.integrations.mailer import Mailer, EmailDeliveryError
from app.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserListResponse, UserCreatedResponse,
    MyPermissionsResponse, UserPermissionsResponse, PermissionGroupSummary
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _search_filter(search: str) -> str:
    # PostgREST or() syntax uses commas and parentheses as separators
    term = "".join(ch for ch in search if ch not in ",()*%")
    return f"name.ilike.%{term}%,email.ilike.%{term}%"


class UserService:
    def __init__(self, supabase: Client, mailer: Optional[Mailer] = None):
        self.supabase = supabase
        self.mailer = mailer or Mailer()

    def _get_user_row(self, user_id: str, workspace_id: str) -> Dict[str, Any]:
        return get_owned_or_404(self.supabase, "users", user_id, workspace_id, detail="User not found")

    def _check_permission_group(self, group_id: Optional[str], workspace_id: str) -> None:
        if group_id and not find_owned(self.supabase, "permission_groups", group_id, workspace_id, "id"):
            raise HTTPException(status_code=400, detail="Permission group not found in this workspace")

    def list_users(self, workspace_id: str, page: int = 1, limit: int = 10, search: Optional[str] = None) -> UserListResponse:
        """Paginated users of the workspace, optionally filtered by name/email"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        start = (page - 1) * limit
        query = self.supabase.table("users")\
            .select("*", count="exact")\
            .eq("workspace_id", workspace_id)
        if search and search.strip():
            query = query.or_(_search_filter(search.strip()))
        result = query.order("created_at", desc=True)\
            .range(start, start + limit - 1)\
            .execute()
        total = result.count if result.count is not None else len(result.data or [])
        return UserListResponse(
            users=[UserResponse(**u) for u in result.data or []],
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        )

    def get_user(self, user_id: str, workspace_id: str) -> UserResponse:
        return UserResponse(**self._get_user_row(user_id, workspace_id))

    def create_user(self, user_data: UserCreate, context: WorkspaceContext) -> UserCreatedResponse:
        """Invite a user into the workspace with a temporary password"""
        if user_data.role == "owner" and context.role != "owner":
            raise HTTPException(status_code=403, detail="Only owners can create owners")
        if user_data.role != "user" and not context.is_superuser:
            raise HTTPException(status_code=403, detail="Only admins can create admins")
        if user_data.permission_group_id and not context_allows(context, "users.manage", self.supabase):
            raise HTTPException(status_code=403, detail="Insufficient permissions. Required: users.manage")
        email = user_data.email.lower()
        existing = self.supabase.table("users")\
            .select("id")\
            .eq("email", email)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Email already registered")
        self._check_permission_group(user_data.permission_group_id, context.workspace_id)

        temp_password = generate_temp_password()
        result = self.supabase.table("users").insert({
            "workspace_id": context.workspace_id,
            "email": email,
            "name": user_data.name.strip(),
            "role": user_data.role,
            "status": "pending",
            "password_hash": get_password_hash(temp_password),
            "permission_group_id": user_data.permission_group_id,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create user")
        user = result.data[0]

        token = TokenService(self.supabase).issue(
            PURPOSE_INVITATION, email,
            timedelta(days=settings.invitation_expire_days),
            user_id=user["id"], workspace_id=context.workspace_id,
        )
        workspace = self.supabase.table("workspaces")\
            .select("name")\
            .eq("id", context.workspace_id)\
            .limit(1)\
            .execute()
        try:
            sent = self.mailer.send_invitation_email(
                email, token,
                user_name=user.get("name"),
                admin_name=context.user.get("name"),
                workspace_name=workspace.data[0]["name"] if workspace.data else None,
            )
        except EmailDeliveryError as e:
            logger.error(f"Invitation email to {mask_email(email)} failed: {e}")
            sent = False
        logger.info(f"User {mask_email(email)} invited as {user_data.role}")
        return UserCreatedResponse(user=UserResponse(**user), temp_password=temp_password, invitation_sent=sent)

    def update_user(
        self,
        user_id: str,
        user_data: UserUpdate,
        context: WorkspaceContext,
        cache: Optional[Dict[str, Any]] = None,
    ) -> UserResponse:
        """
        Everyone may change their own name and password. users.update allows editing
        other members; role, status and group changes need users.manage.
        """
        target = self._get_user_row(user_id, context.workspace_id)
        is_self = user_id == context.user_id
        if not is_self and not context_allows(context, "users.update", self.supabase, cache):
            raise HTTPException(status_code=403, detail="You can only update your own profile")
        if target.get("role") == "owner" and context.role != "owner":
            raise HTTPException(status_code=403, detail="Only owners can modify an owner")
        if not is_self and is_superuser_role(target.get("role")) and not context.is_superuser:
            raise HTTPException(status_code=403, detail="Only admins can modify an admin")

        update_data = {}
        if user_data.name is not None:
            update_data["name"] = user_data.name.strip()
        if user_data.password is not None:
            if not is_self and not context.is_superuser:
                raise HTTPException(status_code=403, detail="Cannot change another user's password")
            update_data["password_hash"] = get_password_hash(user_data.password)
        admin_fields = {
            "role": user_data.role,
            "status": user_data.status,
            "permission_group_id": user_data.permission_group_id,
        }
        requested_admin = {k: v for k, v in admin_fields.items() if v is not None}
        if requested_admin:
            if not context_allows(context, "users.manage", self.supabase, cache):
                raise HTTPException(status_code=403, detail="Only admins can change role, status or permission group")
            if requested_admin.get("role", "user") != "user" and not context.is_superuser:
                raise HTTPException(status_code=403, detail="Only admins can grant the admin role")
            if requested_admin.get("role") == "owner" and context.role != "owner":
                raise HTTPException(status_code=403, detail="Only owners can grant the owner role")
            self._check_permission_group(requested_admin.get("permission_group_id"), context.workspace_id)
            update_data.update(requested_admin)

        if not update_data:
            return UserResponse(**target)
        update_data["updated_at"] = _now_iso()
        result = self.supabase.table("users")\
            .update(update_data)\
            .eq("id", user_id)\
            .eq("workspace_id", context.workspace_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        return UserResponse(**result.data[0])

    def delete_user(self, user_id: str, context: WorkspaceContext) -> bool:
        if user_id == context.user_id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        target = self._get_user_row(user_id, context.workspace_id)
        if target.get("role") == "owner" and context.role != "owner":
            raise HTTPException(status_code=403, detail="Only owners can delete an owner")
        if is_superuser_role(target.get("role")) and not context.is_superuser:
            raise HTTPException(status_code=403, detail="Only admins can delete an admin")
        TokenService(self.supabase).revoke_user(user_id)
        result = self.supabase.table("users")\
            .delete()\
            .eq("id", user_id)\
            .eq("workspace_id", context.workspace_id)\
            .execute()
        logger.info(f"User {mask_email(target.get('email'))} deleted")
        return len(result.data) > 0

    def _group_summary(self, group_id: Optional[str], workspace_id: str) -> Optional[PermissionGroupSummary]:
        if not group_id:
            return None
        group = find_owned(self.supabase, "permission_groups", group_id, workspace_id, "id, name")
        return PermissionGroupSummary(**group) if group else None

    def get_my_permissions(self, context: WorkspaceContext, cache: Optional[Dict[str, Any]] = None) -> MyPermissionsResponse:
        return MyPermissionsResponse(
            role=context.role,
            permissions=get_user_permissions(context.user, self.supabase, cache),
            permission_group=self._group_summary(context.user.get("permission_group_id"), context.workspace_id),
        )

    def get_user_permissions(self, user_id: str, workspace_id: str) -> UserPermissionsResponse:
        target = self._get_user_row(user_id, workspace_id)
        return UserPermissionsResponse(
            user_id=user_id,
            role=target.get("role") or "user",
            permissions=get_user_permissions(target, self.supabase),
            custom_permissions=target.get("permissions") or {},
        )

    def set_user_permissions(self, user_id: str, overrides: Dict[str, Any], context: WorkspaceContext) -> UserPermissionsResponse:
        """Store per-user overrides. Every leaf must be a boolean."""
        target = self._get_user_row(user_id, context.workspace_id)
        if target.get("role") == "owner" and context.role != "owner":
            raise HTTPException(status_code=403, detail="Only owners can modify an owner")
        if not context.is_superuser and (user_id == context.user_id or is_superuser_role(target.get("role"))):
            raise HTTPException(status_code=403, detail="Only admins can change their own or an admin's permissions")
        flat = flatten_permissions(overrides)
        if len(flat) != _count_leaves(overrides):
            raise HTTPException(status_code=400, detail="Permissions must map permission keys to booleans")
        result = self.supabase.table("users")\
            .update({"permissions": overrides, "updated_at": _now_iso()})\
            .eq("id", user_id)\
            .eq("workspace_id", context.workspace_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info(f"Custom permissions updated for user {mask_email(target.get('email'))}: {sorted(flat)}")
        return self.get_user_permissions(user_id, context.workspace_id)


def _count_leaves(value: Any) -> int:
    if isinstance(value, dict):
        return sum(_count_leaves(v) for v in value.values())
    return 1
