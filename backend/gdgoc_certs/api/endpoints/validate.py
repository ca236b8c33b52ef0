"""
Public certificate validation.

No identity headers needed: anyone holding an identifier may check it, so the
payload leaves out the recipient email and the issuing account.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from gdgoc_certs.core.database import get_db
from gdgoc_certs.core.exceptions import CertificateNotFoundError
from gdgoc_certs.core.rate_limiter import validation_rate_limit
from gdgoc_certs.schemas.certificate import PublicCertificate, ValidationResponse
from gdgoc_certs.services.certificate_service import certificate_service

router = APIRouter()


@router.get("/{unique_id}", response_model=ValidationResponse)
@validation_rate_limit()
async def validate_certificate(
    request: Request,
    unique_id: str,
    db: AsyncSession = Depends(get_db)
):
    try:
        certificate = await certificate_service.get_public_certificate(db, unique_id)
    except CertificateNotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"valid": False, "error": "Not found", "message": "Certificate not found"},
        )
    return ValidationResponse(valid=True, certificate=PublicCertificate.model_validate(certificate))
