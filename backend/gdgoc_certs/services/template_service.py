"""
Email Template Service
======================
Built-in templates are read-only HTML files shipped with the package.
Custom templates live in the database, scoped by organization name, and at
most one of them per organization carries the default flag.

The default flag is always cleared across the organization before it is set
on a row, inside the same transaction; the partial unique index on
email_templates rejects anything that slips past that (concurrent writers).
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.exceptions import (
    BuiltinTemplateReadOnlyError,
    DefaultTemplateDeleteError,
    InvalidTemplateNameError,
    InvalidTemplateTypeError,
    ProfileIncompleteError,
    TemplateConflictError,
    TemplateNotFoundError,
    ValidationError,
)
from gdgoc_certs.core.logging_config import logger
from gdgoc_certs.core.types import utcnow
from gdgoc_certs.models.email_template import EmailTemplate
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.schemas.email_template import TEMPLATE_NAME_PATTERN, TemplateUpsert

TEMPLATE_TYPE_BUILTIN = "builtin"
TEMPLATE_TYPE_CUSTOM = "custom"
DEFAULT_BUILTIN_TEMPLATE = "default.html"

BUILTIN_DESCRIPTIONS = {
    "default.html": "Professional template with clean Google-style design",
    "celebratory.html": "Fun, energetic template for special events and hackathons",
    "corporate.html": "Formal template for enterprise and official occasions",
}

_name_re = re.compile(TEMPLATE_NAME_PATTERN)


def builtin_description(filename: str) -> str:
    return BUILTIN_DESCRIPTIONS.get(filename, "Built-in email template")


def is_valid_template_name(name: str) -> bool:
    return bool(_name_re.fullmatch(name or ""))


class TemplateService:
    """Service for built-in and organization email templates"""

    def __init__(self, builtin_dir: Path):
        self.builtin_dir = Path(builtin_dir)

    # ==================== BUILT-IN ====================

    def list_builtin(self) -> List[Dict[str, str]]:
        if not self.builtin_dir.is_dir():
            logger.warning(f"[Templates] Built-in template directory missing: {self.builtin_dir}")
            return []
        names = sorted(
            p.name for p in self.builtin_dir.iterdir()
            if p.is_file() and p.suffix == ".html" and not p.name.startswith(".")
        )
        return [
            {"name": name, "type": TEMPLATE_TYPE_BUILTIN, "description": builtin_description(name)}
            for name in names
        ]

    async def read_builtin(self, name: str) -> str:
        # Only names present in the directory listing resolve, so "../x" never escapes it
        if name not in {t["name"] for t in self.list_builtin()}:
            raise TemplateNotFoundError(f"{TEMPLATE_TYPE_BUILTIN}/{name}")
        async with aiofiles.open(self.builtin_dir / name, mode="r", encoding="utf-8") as f:
            return await f.read()

    # ==================== CUSTOM ====================

    async def list_custom(self, db: AsyncSession, org_name: Optional[str]) -> List[EmailTemplate]:
        if not org_name:
            return []
        result = await db.execute(
            select(EmailTemplate)
            .where(EmailTemplate.org_name == org_name)
            .order_by(EmailTemplate.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_custom(self, db: AsyncSession, org_name: Optional[str], name: str) -> EmailTemplate:
        if not org_name:
            raise TemplateNotFoundError(f"{TEMPLATE_TYPE_CUSTOM}/{name}")
        result = await db.execute(
            select(EmailTemplate).where(
                EmailTemplate.org_name == org_name,
                EmailTemplate.name == name,
            )
        )
        template = result.scalar_one_or_none()
        if not template:
            raise TemplateNotFoundError(f"{TEMPLATE_TYPE_CUSTOM}/{name}")
        return template

    async def _get_owned(self, db: AsyncSession, org_name: str, template_id: str) -> EmailTemplate:
        result = await db.execute(
            select(EmailTemplate).where(
                EmailTemplate.id == template_id,
                EmailTemplate.org_name == org_name,
            )
        )
        template = result.scalar_one_or_none()
        if not template:
            raise TemplateNotFoundError(template_id)
        return template

    async def list_templates(self, db: AsyncSession, issuer: Issuer) -> Dict[str, List[Any]]:
        return {
            "builtin": self.list_builtin(),
            "custom": await self.list_custom(db, issuer.org_name),
        }

    async def get_template(
        self,
        db: AsyncSession,
        issuer: Issuer,
        template_type: str,
        name: str
    ) -> Dict[str, Any]:
        if template_type == TEMPLATE_TYPE_BUILTIN:
            return {
                "name": name,
                "type": TEMPLATE_TYPE_BUILTIN,
                "description": builtin_description(name),
                "html_content": await self.read_builtin(name),
            }
        if template_type == TEMPLATE_TYPE_CUSTOM:
            template = await self.get_custom(db, issuer.org_name, name)
            return {
                "id": template.id,
                "name": template.name,
                "type": TEMPLATE_TYPE_CUSTOM,
                "description": template.description,
                "html_content": template.html_content,
                "is_default": template.is_default,
                "created_at": template.created_at,
                "updated_at": template.updated_at,
            }
        raise InvalidTemplateTypeError(template_type)

    def _require_org(self, issuer: Issuer) -> str:
        if not issuer.org_name:
            raise ProfileIncompleteError()
        return issuer.org_name

    async def _clear_defaults(self, db: AsyncSession, org_name: str) -> None:
        await db.execute(
            update(EmailTemplate)
            .where(EmailTemplate.org_name == org_name, EmailTemplate.is_default.is_(True))
            .values(is_default=False)
        )

    async def upsert_template(
        self,
        db: AsyncSession,
        issuer: Issuer,
        data: TemplateUpsert
    ) -> EmailTemplate:
        """
        Create or overwrite the (org_name, name) template.

        Overwriting the current default keeps it the default even when
        is_default is false; use set_default on another template to move it.
        """
        if not is_valid_template_name(data.name):
            raise InvalidTemplateNameError(data.name)
        if not data.html_content.strip():
            raise ValidationError("html_content is required", field="html_content")
        org_name = self._require_org(issuer)
        ocid = issuer.ocid

        try:
            if data.is_default:
                await self._clear_defaults(db, org_name)

            result = await db.execute(
                select(EmailTemplate).where(
                    EmailTemplate.org_name == org_name,
                    EmailTemplate.name == data.name,
                )
            )
            template = result.scalar_one_or_none()
            created = template is None

            if created:
                template = EmailTemplate(
                    name=data.name,
                    description=data.description,
                    html_content=data.html_content,
                    created_by=ocid,
                    org_name=org_name,
                    is_default=data.is_default,
                )
                db.add(template)
            else:
                template.description = data.description
                template.html_content = data.html_content
                # The default only moves through promoting another template
                template.is_default = template.is_default or data.is_default
                template.updated_at = utcnow()

            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning(f"[Templates] Concurrent write on {org_name}/{data.name}")
            raise TemplateConflictError(data.name)

        logger.info(
            f"[Templates] {'Created' if created else 'Updated'} {org_name}/{data.name}"
            + (" (default)" if template.is_default else "")
        )
        return template

    async def delete_template(self, db: AsyncSession, issuer: Issuer, template_id: str) -> None:
        self.ensure_builtin_is_read_only(template_id)
        if not issuer.org_name:
            raise TemplateNotFoundError(template_id)
        org_name = issuer.org_name

        result = await db.execute(
            delete(EmailTemplate).where(
                EmailTemplate.id == template_id,
                EmailTemplate.org_name == org_name,
                EmailTemplate.is_default.is_(False),
            )
        )
        if result.rowcount == 0:
            # Nothing was deleted; tell "is the default" apart from "not ours / missing"
            template = await self._get_owned(db, org_name, template_id)
            if template.is_default:
                raise DefaultTemplateDeleteError()
            raise TemplateNotFoundError(template_id)

        await db.commit()
        logger.info(f"[Templates] Deleted template {template_id} for {org_name}")

    async def set_default(self, db: AsyncSession, issuer: Issuer, template_id: str) -> EmailTemplate:
        org_name = self._require_org(issuer)
        template = await self._get_owned(db, org_name, template_id)

        try:
            await self._clear_defaults(db, org_name)
            template.is_default = True
            template.updated_at = utcnow()
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning(f"[Templates] Concurrent default change for {org_name}")
            raise TemplateConflictError(template_id)

        logger.info(f"[Templates] {org_name}/{template.name} is now the default template")
        return template

    def ensure_builtin_is_read_only(self, name: str) -> None:
        """Guard for routes that would mutate a built-in by name"""
        if name in {t["name"] for t in self.list_builtin()}:
            raise BuiltinTemplateReadOnlyError(name)

    # ==================== NOTIFICATIONS ====================

    async def resolve_notification_template(self, db: AsyncSession, org_name: Optional[str]) -> str:
        """The organization's default custom template, else the built-in default"""
        if org_name:
            result = await db.execute(
                select(EmailTemplate.html_content).where(
                    EmailTemplate.org_name == org_name,
                    EmailTemplate.is_default.is_(True),
                )
            )
            html = result.scalar_one_or_none()
            if html:
                return html
        return await self.read_builtin(DEFAULT_BUILTIN_TEMPLATE)


template_service = TemplateService(Path(settings.BUILTIN_TEMPLATES_DIR))
