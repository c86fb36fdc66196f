from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class VectorStoreCreate(BaseModel):
    name: str = Field(min_length=1)
    file_ids: List[str]


class VectorStoreFileAdd(BaseModel):
    file_id: str


class VectorStoreFile(BaseModel):
    id: str
    filename: Optional[str] = None
    status: Optional[str] = None


class VectorStoreResponse(BaseModel):
    id: str
    openai_id: str
    name: str
    status: Optional[str] = None
    file_counts: Optional[Dict[str, Any]] = None
    files: List[VectorStoreFile] = []
    created_at: Optional[datetime] = None
