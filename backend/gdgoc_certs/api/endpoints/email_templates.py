from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Union

from gdgoc_certs.core.database import get_db
from gdgoc_certs.core.rate_limiter import api_rate_limit
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.dependencies import get_current_issuer
from gdgoc_certs.schemas.email_template import (
    BuiltinTemplateContent,
    CustomTemplateContent,
    MessageResponse,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpsert,
)
from gdgoc_certs.services.template_service import TEMPLATE_TYPE_BUILTIN, template_service

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
@api_rate_limit()
async def list_templates(
    request: Request,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    """Built-in templates plus the caller's organization templates"""
    return await template_service.list_templates(db, issuer)


@router.get("/{template_type}/{name}", response_model=Union[BuiltinTemplateContent, CustomTemplateContent])
@api_rate_limit()
async def get_template(
    request: Request,
    template_type: str,
    name: str,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    template = await template_service.get_template(db, issuer, template_type, name)
    if template["type"] == TEMPLATE_TYPE_BUILTIN:
        return BuiltinTemplateContent(**template)
    return CustomTemplateContent(**template)


@router.post("", response_model=TemplateResponse)
@api_rate_limit()
async def upsert_template(
    request: Request,
    data: TemplateUpsert,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    """Create or overwrite an organization template by name"""
    return await template_service.upsert_template(db, issuer, data)


@router.delete("/{template_id}", response_model=MessageResponse)
@api_rate_limit()
async def delete_template(
    request: Request,
    template_id: str,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    await template_service.delete_template(db, issuer, template_id)
    return MessageResponse(message="Template deleted successfully")


@router.put("/{template_id}/default", response_model=TemplateResponse)
@api_rate_limit()
async def set_default_template(
    request: Request,
    template_id: str,
    issuer: Issuer = Depends(get_current_issuer),
    db: AsyncSession = Depends(get_db)
):
    """Make this template the organization default (clears any other)"""
    return await template_service.set_default(db, issuer, template_id)
