"""
Permission resolution: role defaults, then permission group items, then per-user overrides.
All functions here are pure and never raise on malformed input.
"""

from typing import Any, Dict, Iterable, Mapping, Optional
import logging

from app.config.permissions_config import SUPERUSER_ROLES, get_role_defaults

logger = logging.getLogger(__name__)

PermissionMap = Dict[str, Any]


def is_superuser_role(role: Optional[str]) -> bool:
    return role in SUPERUSER_ROLES


def _split_key(key: Any) -> Optional[list]:
    if not isinstance(key, str) or not key:
        return None
    parts = key.split(".")
    if any(not part for part in parts):
        return None
    return parts


def set_permission(permissions: PermissionMap, key: str, enabled: bool) -> bool:
    """Set the leaf at a dot path, creating intermediate maps. Returns False if the key is unusable."""
    parts = _split_key(key)
    if parts is None or not isinstance(enabled, bool):
        return False
    node = permissions
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = enabled
    return True


def flatten_permissions(permissions: Mapping[str, Any], prefix: str = "") -> Dict[str, bool]:
    """{"leads": {"view": True}} -> {"leads.view": True}; non-bool leaves are dropped."""
    flat = {}
    for name, value in permissions.items():
        key = f"{prefix}.{name}" if prefix else name
        if isinstance(value, bool):
            flat[key] = value
        elif isinstance(value, Mapping):
            flat.update(flatten_permissions(value, key))
    return flat


def _overlay(permissions: PermissionMap, overrides: Any) -> None:
    if not isinstance(overrides, Mapping):
        return
    for key, value in flatten_permissions(overrides).items():
        set_permission(permissions, key, value)


def resolve_permissions(
    role: Optional[str],
    group_items: Optional[Iterable[Mapping[str, Any]]] = None,
    user_overrides: Optional[Mapping[str, Any]] = None,
) -> PermissionMap:
    """
    Build the effective capability map for a user.

    group_items: [{"key": "leads.delete", "enabled": False}, ...]
    user_overrides: nested map or flat dot keys, applied last.
    """
    permissions = get_role_defaults(role)
    for item in group_items or []:
        if not isinstance(item, Mapping):
            continue
        set_permission(permissions, item.get("key"), item.get("enabled"))
    _overlay(permissions, user_overrides)
    return permissions


def has_permission(permissions: Any, key: Any) -> bool:
    """Walk a dot path through the map. Anything other than a True leaf is a denial."""
    parts = _split_key(key)
    if parts is None:
        return False
    node = permissions
    for part in parts:
        if not isinstance(node, Mapping) or part not in node:
            return False
        node = node[part]
    return node is True
