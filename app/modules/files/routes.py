from fastapi import APIRouter, Depends, File, UploadFile
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIClientFactory, get_openai_factory
from app.modules.files.schemas import FileResponse
from app.modules.files.service import FileService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/files", tags=["files"])


def get_file_service(
    supabase: Client = Depends(get_supabase),
    openai_factory: OpenAIClientFactory = Depends(get_openai_factory)
) -> FileService:
    return FileService(supabase, openai_factory)


@router.post("", response_model=FileResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: FileService = Depends(get_file_service)
):
    """Upload a document to OpenAI for use by assistants"""
    content = await file.read()
    return service.upload_file(file.filename, content, context.workspace_id)


@router.get("", response_model=List[FileResponse])
async def list_files(
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: FileService = Depends(get_file_service)
):
    return service.list_files(context.workspace_id)


@router.delete("/{file_id}", status_code=204)
async def delete_file(
    file_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: FileService = Depends(get_file_service)
):
    service.delete_file(file_id, context.workspace_id)
    return None
