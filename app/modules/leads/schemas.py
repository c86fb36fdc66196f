from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime


class LabelResponse(BaseModel):
    id: str
    name: str
    color: str


class LeadCreate(BaseModel):
    name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    photo: Optional[str] = None
    notes: Optional[str] = None
    value: Optional[float] = None
    source: Optional[str] = None
    origin_id: Optional[str] = None
    stage_id: Optional[str] = None
    owner_id: Optional[str] = None
    label_ids: List[str] = []


class LeadUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None
    notes: Optional[str] = None
    value: Optional[float] = None
    owner_id: Optional[str] = None
    label_ids: Optional[List[str]] = None  # replaces the lead's labels when given


class LeadStageUpdate(BaseModel):
    stage_id: str = Field(min_length=1)
    value: Optional[float] = None
    owner_id: Optional[str] = None
    source: Optional[str] = None
    origin_id: Optional[str] = None


class LeadResponse(BaseModel):
    id: str
    workspace_id: str
    name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    photo: Optional[str] = None
    notes: Optional[str] = None
    value: Optional[float] = None
    source: Optional[str] = None
    origin_id: Optional[str] = None
    stage_id: Optional[str] = None
    owner_id: Optional[str] = None
    labels: List[LabelResponse] = []
    updated: bool = False  # set when a create matched an existing lead
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomFieldValue(BaseModel):
    field_id: str
    value: Any = None


class CustomFieldValuesUpdate(BaseModel):
    values: List[CustomFieldValue]
