from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.integrations.openai_client import OpenAIClientFactory, get_openai_factory
from app.modules.vector_stores.schemas import (
    VectorStoreCreate, VectorStoreResponse, VectorStoreFile, VectorStoreFileAdd
)
from app.modules.vector_stores.service import VectorStoreService
from app.core.dependencies import WorkspaceContext, require_permission
from supabase import Client
from typing import List

router = APIRouter(prefix="/vector-stores", tags=["vector-stores"])


def get_vector_store_service(
    supabase: Client = Depends(get_supabase),
    openai_factory: OpenAIClientFactory = Depends(get_openai_factory)
) -> VectorStoreService:
    return VectorStoreService(supabase, openai_factory)


@router.get("", response_model=List[VectorStoreResponse])
async def list_vector_stores(
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    """Vector stores of the workspace with provider status and files"""
    return service.list_stores(context.workspace_id)


@router.post("", response_model=VectorStoreResponse, status_code=201)
async def create_vector_store(
    data: VectorStoreCreate,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    return service.create_store(data, context.workspace_id)


@router.delete("/{store_id}", status_code=204)
async def delete_vector_store(
    store_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    service.delete_store(store_id, context.workspace_id)
    return None


@router.get("/{store_id}/files", response_model=List[VectorStoreFile])
async def list_vector_store_files(
    store_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.view")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    return service.list_store_files(store_id, context.workspace_id)


@router.post("/{store_id}/files", response_model=VectorStoreFile, status_code=201)
async def add_vector_store_file(
    store_id: str,
    body: VectorStoreFileAdd,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    return service.add_store_file(store_id, body.file_id, context.workspace_id)


@router.delete("/{store_id}/files/{file_id}", status_code=204)
async def remove_vector_store_file(
    store_id: str,
    file_id: str,
    context: WorkspaceContext = Depends(require_permission("agents.update")),
    service: VectorStoreService = Depends(get_vector_store_service)
):
    service.remove_store_file(store_id, file_id, context.workspace_id)
    return None
