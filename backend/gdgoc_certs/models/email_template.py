from sqlalchemy import Column, String, Boolean, DateTime, Text, Index, UniqueConstraint, text

from gdgoc_certs.core.database import Base
from gdgoc_certs.core.types import GUID, generate_uuid, utcnow


class EmailTemplate(Base):
    """Organization-owned custom email template"""
    __tablename__ = "email_templates"
    __table_args__ = (
        UniqueConstraint("org_name", "name", name="uq_email_templates_org_name"),
        # At most one default per organization
        Index(
            "uq_email_templates_org_default",
            "org_name",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    html_content = Column(Text, nullable=False)

    created_by = Column(String(255), nullable=True)  # issuer ocid
    org_name = Column(String(255), index=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<EmailTemplate {self.org_name}/{self.name}>"
