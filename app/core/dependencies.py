"""
Core dependencies for route protection and permission checking
"""

from dataclasses import dataclass, field
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.permissions import is_superuser_role, resolve_permissions, has_permission
from app.core.security import decode_access_token, mask_id
from app.database.supabase_client import get_supabase
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

NO_CONTEXT_DETAIL = "No workspace context"


@dataclass
class WorkspaceContext:
    workspace_id: str
    user_id: str
    role: str
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_superuser(self) -> bool:
        return is_superuser_role(self.role)


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (context, group items, permissions)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def _unauthorized(detail: str = NO_CONTEXT_DETAIL) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


def get_workspace_context(
    request: Request,
    token: Optional[str] = Depends(get_access_token),
    supabase: Client = Depends(get_supabase),
) -> WorkspaceContext:
    """Derive workspace and user from the signed token and the user row. Fails closed."""
    cache = _get_request_cache(request)
    if "context" in cache:
        return cache["context"]
    if not token:
        raise _unauthorized()
    claims = decode_access_token(token)
    if not claims:
        raise _unauthorized("Invalid or expired token")
    user_id = claims.get("sub")
    workspace_id = claims.get("workspace_id")
    if not user_id or not workspace_id:
        raise _unauthorized()

    result = supabase.table("users")\
        .select("*")\
        .eq("id", user_id)\
        .eq("workspace_id", workspace_id)\
        .limit(1)\
        .execute()
    if not result.data:
        logger.warning(f"Token for unknown user {mask_id(user_id)} in workspace {mask_id(workspace_id)}")
        raise _unauthorized()
    user = result.data[0]
    if user.get("status") != "active":
        raise _unauthorized("Inactive account")

    context = WorkspaceContext(
        workspace_id=workspace_id,
        user_id=user_id,
        role=user.get("role") or "user",
        user=user,
    )
    cache["context"] = context
    return context


def get_permission_group_items(
    group_id: Optional[str],
    workspace_id: str,
    supabase: Client,
) -> List[Dict[str, Any]]:
    """[{"key": ..., "enabled": ...}] for a group of the workspace. Foreign groups yield nothing."""
    if not group_id:
        return []
    group_result = supabase.table("permission_groups")\
        .select("id")\
        .eq("id", group_id)\
        .eq("workspace_id", workspace_id)\
        .limit(1)\
        .execute()
    if not group_result.data:
        logger.warning(f"Permission group {mask_id(group_id)} not found in workspace {mask_id(workspace_id)}")
        return []
    items_result = supabase.table("permission_group_items")\
        .select("permission_id, enabled")\
        .eq("group_id", group_id)\
        .execute()
    items = items_result.data or []
    if not items:
        return []
    permission_ids = list({item["permission_id"] for item in items})
    permissions_result = supabase.table("permissions")\
        .select("id, key")\
        .in_("id", permission_ids)\
        .execute()
    keys = {p["id"]: p["key"] for p in permissions_result.data or []}
    return [
        {"key": keys[item["permission_id"]], "enabled": bool(item.get("enabled"))}
        for item in items
        if item["permission_id"] in keys
    ]


def get_user_permissions(
    user: Dict[str, Any],
    supabase: Client,
    cache: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Effective capability map for a user row. Populates request-scoped cache when provided."""
    cache_key = f"permissions:{user.get('id')}"
    if cache is not None and cache_key in cache:
        return cache[cache_key]
    group_items = get_permission_group_items(user.get("permission_group_id"), user.get("workspace_id"), supabase)
    permissions = resolve_permissions(user.get("role"), group_items, user.get("permissions"))
    if cache is not None:
        cache[cache_key] = permissions
    return permissions


def context_allows(
    context: WorkspaceContext,
    required_permission: str,
    supabase: Client,
    cache: Optional[Dict[str, Any]] = None,
) -> bool:
    """Owner/admin are granted explicitly (and logged); everyone else goes through the resolved map."""
    if context.is_superuser:
        logger.info(
            f"Superuser access: role={context.role} user={mask_id(context.user_id)} "
            f"workspace={mask_id(context.workspace_id)} permission={required_permission}"
        )
        return True
    return has_permission(get_user_permissions(context.user, supabase, cache), required_permission)


def check_permission(
    context: WorkspaceContext,
    required_permission: str,
    supabase: Client,
    cache: Optional[Dict[str, Any]] = None,
) -> WorkspaceContext:
    if not context_allows(context, required_permission, supabase, cache):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {required_permission}"
        )
    return context


def require_permission(required_permission: str):
    """Factory function to create permission check dependency"""
    def permission_dependency(
        request: Request,
        context: WorkspaceContext = Depends(get_workspace_context),
        supabase: Client = Depends(get_supabase)
    ) -> WorkspaceContext:
        return check_permission(context, required_permission, supabase, _get_request_cache(request))
    return permission_dependency


def require_roles(*roles: str):
    """Factory for endpoints reserved to specific roles (e.g. owner/admin administration)."""
    def check_role(context: WorkspaceContext = Depends(get_workspace_context)) -> WorkspaceContext:
        if context.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {' or '.join(roles)}"
            )
        return context
    return check_role


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache."""
    return _get_request_cache(request)
