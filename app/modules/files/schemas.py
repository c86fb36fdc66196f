from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class FileResponse(BaseModel):
    id: str
    workspace_id: str
    openai_id: str
    filename: str
    bytes: Optional[int] = None
    purpose: str = "assistants"
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
