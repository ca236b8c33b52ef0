from fastapi import APIRouter, Depends, Request, Response, status
from typing import Tuple

from gdgoc_certs.core.rate_limiter import auth_rate_limit
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.dependencies import get_issuer_resolution
from gdgoc_certs.schemas.issuer import IssuerResponse

router = APIRouter()


@router.get("/me", response_model=IssuerResponse)
@auth_rate_limit()
async def get_me(
    request: Request,
    response: Response,
    resolution: Tuple[Issuer, bool] = Depends(get_issuer_resolution)
):
    """
    Current issuer profile.

    The first call for a new identity provisions the issuer and answers 201.
    """
    issuer, created = resolution
    if created:
        response.status_code = status.HTTP_201_CREATED
    return issuer
