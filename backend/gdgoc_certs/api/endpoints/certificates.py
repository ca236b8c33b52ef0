from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from gdgoc_certs.core.database import get_db
from gdgoc_certs.core.rate_limiter import api_rate_limit, certificate_rate_limit
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.dependencies import get_current_issuer
from gdgoc_certs.schemas.certificate import (
    BulkCertificateRequest,
    BulkCertificateResponse,
    CertificateCreate,
    CertificateIssueResponse,
    CertificateListResponse,
    CertificateResponse,
    NotificationResponse,
)
from gdgoc_certs.services.certificate_service import certificate_service
from gdgoc_certs.services.email_service import EmailService, get_email_service

router = APIRouter()


@router.post("", response_model=CertificateIssueResponse, status_code=status.HTTP_201_CREATED)
@certificate_rate_limit()
async def create_certificate(
    request: Request,
    data: CertificateCreate,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Issue one certificate; the email outcome is reported, never fatal"""
    result = await certificate_service.issue_certificate(db, issuer, data, email_service)
    payload = CertificateResponse.model_validate(result.certificate).model_dump()
    return CertificateIssueResponse(
        **payload,
        notification=NotificationResponse(
            status=result.notification.status,
            error=result.notification.error,
        ),
    )


@router.post("/bulk", response_model=BulkCertificateResponse, status_code=status.HTTP_201_CREATED)
@certificate_rate_limit()
async def create_certificates_bulk(
    request: Request,
    data: BulkCertificateRequest,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Issue many certificates; each row succeeds or fails on its own"""
    result = await certificate_service.issue_bulk(db, issuer, data.certificates, email_service)
    return BulkCertificateResponse(
        total=result.total,
        successful=result.successful,
        failed=result.failed,
        certificates=[CertificateResponse.model_validate(c) for c in result.certificates],
        errors=result.errors,
    )


@router.get("", response_model=CertificateListResponse)
@api_rate_limit()
async def list_certificates(
    request: Request,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    """Caller's own certificates, newest first"""
    page = await certificate_service.list_for_issuer(db, issuer, limit=limit, offset=offset)
    return CertificateListResponse(
        total=page["total"],
        limit=page["limit"],
        offset=page["offset"],
        certificates=[CertificateResponse.model_validate(c) for c in page["certificates"]],
    )
