from sqlalchemy import Column, String, Boolean, DateTime

from gdgoc_certs.core.database import Base
from gdgoc_certs.core.types import GUID, generate_uuid, utcnow


class Issuer(Base):
    """A leader allowed to issue certificates, keyed by the identity proxy uid"""
    __tablename__ = "allowed_leaders"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    ocid = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # Write-once: org_name_set_at is stamped in the same UPDATE that sets org_name
    org_name = Column(String(255), nullable=True)
    org_name_set_at = Column(DateTime, nullable=True)

    can_login = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def org_name_locked(self) -> bool:
        return bool(self.org_name and self.org_name_set_at)

    def __repr__(self):
        return f"<Issuer {self.ocid} {self.email}>"
