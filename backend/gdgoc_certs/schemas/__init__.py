# Pydantic schemas
from gdgoc_certs.schemas.issuer import IssuerResponse, ProfileUpdate
from gdgoc_certs.schemas.certificate import (
    CertificateCreate,
    CertificateResponse,
    CertificateIssueResponse,
    CertificateListResponse,
    BulkCertificateRequest,
    BulkCertificateResponse,
    BulkFailure,
    NotificationResponse,
    PublicCertificate,
    ValidationResponse,
)
from gdgoc_certs.schemas.email_template import (
    TEMPLATE_NAME_PATTERN,
    BuiltinTemplateInfo,
    CustomTemplateInfo,
    TemplateListResponse,
    BuiltinTemplateContent,
    CustomTemplateContent,
    TemplateUpsert,
    TemplateResponse,
    MessageResponse,
)
