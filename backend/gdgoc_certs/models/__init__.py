# Re-export all models for convenient imports
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.models.certificate import Certificate, EventType
from gdgoc_certs.models.email_template import EmailTemplate

__all__ = [
    "Issuer",
    "Certificate",
    "EventType",
    "EmailTemplate",
]
