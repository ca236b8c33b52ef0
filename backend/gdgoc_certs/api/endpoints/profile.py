from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gdgoc_certs.core.database import get_db
from gdgoc_certs.core.rate_limiter import api_rate_limit
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.dependencies import get_current_issuer
from gdgoc_certs.schemas.issuer import IssuerResponse, ProfileUpdate
from gdgoc_certs.services.issuer_service import issuer_service

router = APIRouter()


@router.get("", response_model=IssuerResponse)
@api_rate_limit()
async def get_profile(
    request: Request,
    issuer: Issuer = Depends(get_current_issuer)
):
    return issuer


@router.put("", response_model=IssuerResponse)
@api_rate_limit()
async def update_profile(
    request: Request,
    data: ProfileUpdate,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    """Update display name and/or set the organization name (once)"""
    return await issuer_service.update_profile(db, issuer, data)
