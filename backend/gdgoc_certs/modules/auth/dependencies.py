from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Tuple

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.database import get_db
from gdgoc_certs.core.exceptions import MissingIdentityError
from gdgoc_certs.core.logging_config import logger, set_caller
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.identity import CallerIdentity, identity_from_headers
from gdgoc_certs.services.issuer_service import issuer_service


async def get_caller_identity(request: Request) -> CallerIdentity:
    """Identity injected by the authentik proxy"""
    try:
        identity = identity_from_headers(request.headers, settings)
    except MissingIdentityError:
        logger.log_auth_event(event="identify", success=False, reason="missing identity headers", path=request.url.path)
        raise
    set_caller(identity.id)
    request.state.caller_ocid = identity.id
    return identity


async def get_issuer_resolution(
    request: Request,
    identity: CallerIdentity = Depends(get_caller_identity),
    db: AsyncSession = Depends(get_db)
) -> Tuple[Issuer, bool]:
    """(issuer, created) - provisions the issuer on first contact"""
    issuer, created = await issuer_service.resolve_issuer(db, identity)
    # request.state is shared with RequestLoggingMiddleware; context vars are not
    set_caller(issuer.ocid, issuer.org_name)
    request.state.org_name = issuer.org_name
    return issuer, created


async def get_current_issuer(
    resolution: Tuple[Issuer, bool] = Depends(get_issuer_resolution)
) -> Issuer:
    """Get current issuer; disabled accounts never get this far"""
    issuer, _ = resolution
    return issuer
