from sqlalchemy import Column, String, Date, DateTime, Text, Enum as SQLEnum
import enum

from gdgoc_certs.core.database import Base
from gdgoc_certs.core.types import GUID, generate_uuid, utcnow


class EventType(str, enum.Enum):
    """Kinds of events a certificate can be issued for"""
    WORKSHOP = "workshop"
    COURSE = "course"


class Certificate(Base):
    """
    An issued certificate.

    issuer_name and org_name are a snapshot taken at issuance; later profile
    edits never touch existing rows. generated_by holds the issuer's ocid.
    """
    __tablename__ = "certificates"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    unique_id = Column(String(64), unique=True, index=True, nullable=False)

    recipient_name = Column(String(255), nullable=False)
    recipient_email = Column(String(255), nullable=True)
    event_type = Column(
        SQLEnum(EventType, name="event_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    event_name = Column(String(255), nullable=False)
    issue_date = Column(Date, nullable=False)

    # Issuer snapshot
    issuer_name = Column(String(255), nullable=False)
    org_name = Column(String(255), nullable=False)
    generated_by = Column(String(255), index=True, nullable=False)

    # Filled in by the external PDF renderer
    pdf_url = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Certificate {self.unique_id}>"
