from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


TEMPLATE_NAME_PATTERN = r'^[a-zA-Z0-9_-]+\.html$'


class BuiltinTemplateInfo(BaseModel):
    name: str
    type: str = "builtin"
    description: str


class CustomTemplateInfo(BaseModel):
    id: str
    name: str
    type: str = "custom"
    description: Optional[str] = None
    is_default: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateListResponse(BaseModel):
    builtin: List[BuiltinTemplateInfo]
    custom: List[CustomTemplateInfo]


class BuiltinTemplateContent(BuiltinTemplateInfo):
    html_content: str


class CustomTemplateContent(CustomTemplateInfo):
    html_content: str


class TemplateUpsert(BaseModel):
    # Pattern is checked by the service so the error matches the other 400s
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    html_content: str = Field(..., min_length=1)
    is_default: bool = False


class TemplateResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    html_content: str
    org_name: str
    created_by: Optional[str] = None
    is_default: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
