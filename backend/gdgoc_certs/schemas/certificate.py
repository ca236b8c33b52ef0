from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Any
from datetime import date, datetime

from gdgoc_certs.models.certificate import EventType


class CertificateCreate(BaseModel):
    recipient_name: str = Field(..., min_length=1, max_length=255)
    recipient_email: Optional[EmailStr] = None
    event_type: EventType
    event_name: str = Field(..., min_length=1, max_length=255)
    issue_date: Optional[date] = None

    @field_validator('recipient_name', 'event_name', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator('recipient_email', 'issue_date', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        # CSV exports send empty cells as ""
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value


class CertificateResponse(BaseModel):
    id: str
    unique_id: str
    recipient_name: str
    recipient_email: Optional[str] = None
    event_type: EventType
    event_name: str
    issue_date: date
    issuer_name: str
    org_name: str
    generated_by: str
    pdf_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    status: str  # sent, failed, skipped
    error: Optional[str] = None


class CertificateIssueResponse(CertificateResponse):
    notification: NotificationResponse


class CertificateListResponse(BaseModel):
    total: int
    limit: int
    offset: int
    certificates: List[CertificateResponse]


class BulkCertificateRequest(BaseModel):
    # Rows stay untyped so one malformed row cannot reject the whole batch
    certificates: List[Any] = Field(default_factory=list)


class BulkFailure(BaseModel):
    data: Any
    error: str


class BulkCertificateResponse(BaseModel):
    total: int
    successful: int
    failed: int
    certificates: List[CertificateResponse]
    errors: List[BulkFailure]


class PublicCertificate(BaseModel):
    """What anyone holding the identifier may see"""
    unique_id: str
    recipient_name: str
    event_type: EventType
    event_name: str
    issue_date: date
    issuer_name: str
    org_name: str
    pdf_url: Optional[str] = None

    class Config:
        from_attributes = True


class ValidationResponse(BaseModel):
    valid: bool
    certificate: PublicCertificate
