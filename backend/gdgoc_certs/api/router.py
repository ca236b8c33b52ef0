from fastapi import APIRouter

from gdgoc_certs.api.endpoints import auth, profile, certificates, validate, email_templates, health

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(profile.router, prefix="/profile", tags=["Profile"])
api_router.include_router(certificates.router, prefix="/certificates", tags=["Certificates"])
api_router.include_router(validate.router, prefix="/validate", tags=["Validation"])
api_router.include_router(email_templates.router, prefix="/templates/email", tags=["Email Templates"])
