from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal, Any
from datetime import datetime

FieldType = Literal["text", "number", "date", "select", "checkbox", "textarea"]


class ContactFieldCreate(BaseModel):
    name: str = Field(min_length=1)
    type: FieldType = "text"
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    default_value: Optional[Any] = None
    description: Optional[str] = None
    order: Optional[int] = None

    @model_validator(mode="after")
    def select_needs_options(self):
        if self.type == "select" and not self.options:
            raise ValueError("Select fields require at least one option")
        return self


class ContactFieldUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[FieldType] = None
    required: Optional[bool] = None
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    default_value: Optional[Any] = None
    description: Optional[str] = None
    order: Optional[int] = None


class ContactFieldResponse(BaseModel):
    id: str
    workspace_id: str
    name: str
    type: str
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    default_value: Optional[Any] = None
    description: Optional[str] = None
    order: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
