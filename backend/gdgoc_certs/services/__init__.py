# Singletons live in their modules (e.g. services.certificate_service.certificate_service);
# only the classes are re-exported so the submodule names stay importable.
from gdgoc_certs.services.issuer_service import IssuerService
from gdgoc_certs.services.template_service import TemplateService
from gdgoc_certs.services.certificate_service import CertificateService
from gdgoc_certs.services.email_service import EmailService, get_email_service

__all__ = [
    "IssuerService",
    "TemplateService",
    "CertificateService",
    "EmailService",
    "get_email_service",
]
