from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from datetime import datetime


class IssuerResponse(BaseModel):
    id: str
    ocid: str
    name: str
    email: str
    org_name: Optional[str] = None
    org_name_set_at: Optional[datetime] = None
    can_login: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Name can change any time; org_name is accepted only while unset"""
    name: Optional[str] = None
    org_name: Optional[str] = None

    @field_validator('name', 'org_name', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode='after')
    def require_one_field(self):
        if self.name is None and self.org_name is None:
            raise ValueError("At least one field (name or org_name) is required")
        return self
