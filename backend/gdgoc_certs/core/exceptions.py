"""
Custom Exceptions for the GDGoC Certificate API
===============================================

Services raise these instead of HTTPException so the same rules apply whether
they are called from an endpoint, the admin CLI or a test. The application
registers a single handler that renders any CertsError with its status code.

Usage:
    from gdgoc_certs.core.exceptions import ProfileIncompleteError

    if not issuer.org_name:
        raise ProfileIncompleteError()
"""

from typing import Optional, Any, Dict


class CertsError(Exception):
    """Base exception for all certificate service errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(CertsError):
    """Caller identity could not be established"""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="AUTH_REQUIRED")


class MissingIdentityError(AuthenticationError):
    """The identity proxy headers are absent"""

    def __init__(self):
        super().__init__("Missing authentik headers")
        self.code = "MISSING_IDENTITY_HEADERS"


class AuthorizationError(CertsError):
    """Caller is not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class AccountDisabledError(AuthorizationError):
    """Issuer exists but login has been disabled"""

    def __init__(self):
        super().__init__(
            "Your account has been disabled. Please contact an administrator.",
            code="ACCOUNT_DISABLED"
        )


class OrgNameLockedError(AuthorizationError):
    """Organization name was already set and locked"""

    def __init__(self):
        super().__init__(
            "Organization name cannot be changed once set. "
            "Please submit a support ticket if you need to change it.",
            code="ORG_NAME_LOCKED"
        )


class DefaultTemplateDeleteError(AuthorizationError):
    """The organization's default template cannot be deleted"""

    def __init__(self):
        super().__init__(
            "Cannot delete default template. Set another template as default first.",
            code="DEFAULT_TEMPLATE_DELETE"
        )


class BuiltinTemplateReadOnlyError(AuthorizationError):
    """Built-in templates are read-only"""

    def __init__(self, name: str):
        super().__init__(f"Built-in template '{name}' is read-only", code="BUILTIN_TEMPLATE_READ_ONLY")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(CertsError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class IssuerNotFoundError(ResourceNotFoundError):
    """Issuer not found"""

    def __init__(self, ocid: str):
        super().__init__("Issuer", ocid)


class CertificateNotFoundError(ResourceNotFoundError):
    """Certificate not found"""

    def __init__(self, unique_id: str):
        super().__init__("Certificate", unique_id)


class TemplateNotFoundError(ResourceNotFoundError):
    """Email template not found (or owned by another organization)"""

    def __init__(self, template_ref: str):
        super().__init__("Template", template_ref)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(CertsError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class ProfileIncompleteError(ValidationError):
    """Issuer has not set an organization name yet"""

    def __init__(self):
        super().__init__(
            "Please complete your profile setup before generating certificates",
            field="org_name"
        )
        self.code = "PROFILE_INCOMPLETE"


class InvalidTemplateNameError(ValidationError):
    """Template name does not match the allowed pattern"""

    def __init__(self, name: str):
        super().__init__(
            "Invalid template name. Must be alphanumeric with .html extension",
            field="name"
        )
        self.code = "INVALID_TEMPLATE_NAME"
        self.details["name"] = name


class InvalidTemplateTypeError(ValidationError):
    """Template type is neither builtin nor custom"""

    def __init__(self, template_type: str):
        super().__init__("Invalid template type", field="type")
        self.code = "INVALID_TEMPLATE_TYPE"
        self.details["type"] = template_type


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(CertsError):
    """A uniqueness constraint was violated"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class DuplicateIssuerError(ConflictError):
    """Another issuer already uses this email"""

    def __init__(self):
        super().__init__("An account with this email already exists", code="DUPLICATE_ISSUER")


class TemplateConflictError(ConflictError):
    """Concurrent write to the same (org, name) template"""

    def __init__(self, name: str):
        super().__init__(f"Template '{name}' was modified concurrently, please retry", code="TEMPLATE_CONFLICT")


# ============================================
# Internal Errors
# ============================================

class CertificateIdCollisionError(CertsError):
    """Could not generate an unused certificate identifier"""

    def __init__(self, attempts: int):
        super().__init__(
            "Failed to create certificate",
            code="CERTIFICATE_ID_COLLISION",
            details={"attempts": attempts}
        )


def error_response(error: CertsError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
