from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import List

from app.modules.workspaces.schemas import WorkspaceResponse, WorkspaceUpdate, WorkspaceMember

DEFAULT_MEMBER_NAME = "Usuário sem nome"


class WorkspaceService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_workspace(self, workspace_id: str) -> WorkspaceResponse:
        result = self.supabase.table("workspaces")\
            .select("*")\
            .eq("id", workspace_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Workspace not found")
        return WorkspaceResponse(**result.data[0])

    def update_workspace(self, workspace_id: str, data: WorkspaceUpdate) -> WorkspaceResponse:
        result = self.supabase.table("workspaces")\
            .update({"name": data.name.strip(), "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", workspace_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Workspace not found")
        return WorkspaceResponse(**result.data[0])

    def list_members(self, workspace_id: str) -> List[WorkspaceMember]:
        """Workspace users for pickers (assignment, mentions), ordered by name"""
        result = self.supabase.table("users")\
            .select("id, name, email, role")\
            .eq("workspace_id", workspace_id)\
            .order("name")\
            .execute()
        return [
            WorkspaceMember(
                id=u["id"],
                name=u.get("name") or DEFAULT_MEMBER_NAME,
                email=u.get("email") or "",
                role=u.get("role") or "user",
            )
            for u in result.data or []
        ]
