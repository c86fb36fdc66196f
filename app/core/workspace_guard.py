"""
Tenant isolation helpers. Every tenant table carries workspace_id and every query filters on it.
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from supabase import Client


def scoped(supabase: Client, table: str, workspace_id: str, columns: str = "*"):
    """select() on a tenant table, already filtered to the workspace."""
    if not workspace_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No workspace context")
    return supabase.table(table).select(columns).eq("workspace_id", workspace_id)


def find_owned(
    supabase: Client,
    table: str,
    row_id: str,
    workspace_id: str,
    columns: str = "*",
    id_column: str = "id",
) -> Optional[Dict[str, Any]]:
    result = scoped(supabase, table, workspace_id, columns)\
        .eq(id_column, row_id)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


def get_owned_or_404(
    supabase: Client,
    table: str,
    row_id: str,
    workspace_id: str,
    detail: str = "Not found",
    columns: str = "*",
    id_column: str = "id",
) -> Dict[str, Any]:
    """Read a row by id within the workspace. Rows of other workspaces are reported as missing."""
    row = find_owned(supabase, table, row_id, workspace_id, columns, id_column)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return row


def escape_like(value: str) -> str:
    """Literal match for ilike(): backslash-escape the LIKE wildcards."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
