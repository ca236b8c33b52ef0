"""
Caller identity from identity-proxy headers.

Trust boundary: this service performs no cryptographic verification. It
believes the uid/name/email headers because the deployment puts it behind the
authentik proxy, which authenticates the user, strips any client-supplied
copies of these headers and injects its own. Exposing the API without that
proxy lets any client impersonate any issuer.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from gdgoc_certs.core.config import Settings
from gdgoc_certs.core.exceptions import MissingIdentityError


@dataclass(frozen=True)
class CallerIdentity:
    id: str
    name: str
    email: str


def _header(headers: Mapping[str, str], key: str) -> Optional[str]:
    value = headers.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def identity_from_headers(headers: Mapping[str, str], settings: Settings) -> CallerIdentity:
    """Build the caller identity, failing closed when uid or email is missing"""
    uid = _header(headers, settings.AUTH_HEADER_UID)
    email = _header(headers, settings.AUTH_HEADER_EMAIL)
    if not uid or not email:
        raise MissingIdentityError()

    name = _header(headers, settings.AUTH_HEADER_NAME) or email.split("@")[0]
    return CallerIdentity(id=uid, name=name, email=email)
