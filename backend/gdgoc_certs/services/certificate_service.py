"""
Certificate Service - issuance, listing and public validation

Handles:
- Identifier generation (GDGOC-<base36 ms>-<8 hex>)
- Single and bulk issuance with an issuer snapshot
- Best-effort recipient notification after the row is committed
- Paginated listing of the caller's own certificates
- Public lookup by identifier
"""

import asyncio
import secrets
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.exceptions import (
    CertificateIdCollisionError,
    CertificateNotFoundError,
    ProfileIncompleteError,
    ValidationError,
)
from gdgoc_certs.core.logging_config import logger
from gdgoc_certs.models.certificate import Certificate
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.schemas.certificate import CertificateCreate
from gdgoc_certs.services.email_service import CertificateEmail, EmailService
from gdgoc_certs.services.template_service import template_service

NOTIFICATION_SENT = "sent"
NOTIFICATION_FAILED = "failed"
NOTIFICATION_SKIPPED = "skipped"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_unique_id(prefix: Optional[str] = None) -> str:
    """Public certificate identifier, e.g. GDGOC-LZ8K2M1Q-9F3A0B7C"""
    prefix = prefix or settings.CERTIFICATE_ID_PREFIX
    timestamp = to_base36(int(time.time() * 1000))
    return f"{prefix}-{timestamp}-{secrets.token_hex(4)}".upper()


@dataclass
class NotificationOutcome:
    status: str
    error: Optional[str] = None


@dataclass
class IssuanceResult:
    certificate: Certificate
    notification: NotificationOutcome


@dataclass
class BulkResult:
    total: int
    certificates: List[Certificate] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return len(self.certificates)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class IssuerSnapshot:
    """Issuer fields copied onto every certificate; survives session rollbacks"""
    ocid: str
    name: str
    org_name: str


def describe_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "row"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class CertificateService:
    """Service for issuing and looking up certificates"""

    def __init__(self, max_attempts: int = 3, notify_concurrency: int = 10):
        self.max_attempts = max_attempts
        self.notify_concurrency = notify_concurrency

    def _snapshot(self, issuer: Issuer) -> IssuerSnapshot:
        if not issuer.org_name:
            raise ProfileIncompleteError()
        return IssuerSnapshot(ocid=issuer.ocid, name=issuer.name, org_name=issuer.org_name)

    async def _insert(
        self,
        db: AsyncSession,
        snapshot: IssuerSnapshot,
        data: CertificateCreate
    ) -> Certificate:
        """Insert and commit one certificate, regenerating the identifier on collision"""
        for attempt in range(1, self.max_attempts + 1):
            certificate = Certificate(
                unique_id=generate_unique_id(),
                recipient_name=data.recipient_name,
                recipient_email=str(data.recipient_email) if data.recipient_email else None,
                event_type=data.event_type,
                event_name=data.event_name,
                issue_date=data.issue_date or date.today(),
                issuer_name=snapshot.name,
                org_name=snapshot.org_name,
                generated_by=snapshot.ocid,
            )
            db.add(certificate)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.warning(
                    f"[Certificates] Identifier collision on {certificate.unique_id} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                continue

            # Detach so a later rollback on this session cannot expire a committed row
            db.expunge(certificate)
            return certificate

        logger.error(f"[Certificates] Gave up generating an identifier after {self.max_attempts} attempts")
        raise CertificateIdCollisionError(self.max_attempts)

    # ==================== NOTIFICATION ====================

    async def notify(
        self,
        certificate: Certificate,
        email_service: EmailService,
        template_html: str
    ) -> NotificationOutcome:
        """Send the recipient notification; never raises"""
        if not certificate.recipient_email:
            return NotificationOutcome(status=NOTIFICATION_SKIPPED)

        variables = CertificateEmail(
            recipient_name=certificate.recipient_name,
            event_name=certificate.event_name,
            event_type=certificate.event_type.value,
            unique_id=certificate.unique_id,
            validation_url=email_service.validation_url(certificate.unique_id),
            issuer_name=certificate.issuer_name,
            org_name=certificate.org_name,
            issue_date=certificate.issue_date.isoformat(),
            pdf_url=certificate.pdf_url or "",
        )
        try:
            sent = await asyncio.wait_for(
                email_service.send_certificate_email(certificate.recipient_email, variables, template_html),
                timeout=email_service.timeout,
            )
        except asyncio.TimeoutError:
            outcome = NotificationOutcome(status=NOTIFICATION_FAILED, error="Email delivery timed out")
        except Exception as e:
            outcome = NotificationOutcome(status=NOTIFICATION_FAILED, error=str(e))
        else:
            if sent:
                outcome = NotificationOutcome(status=NOTIFICATION_SENT)
            else:
                outcome = NotificationOutcome(status=NOTIFICATION_FAILED, error="Email could not be sent")

        logger.log_notification(certificate.unique_id, outcome.status, outcome.error)
        return outcome

    async def _notification_template(self, db: AsyncSession, org_name: str) -> Optional[str]:
        try:
            return await template_service.resolve_notification_template(db, org_name)
        except Exception as e:
            logger.error(f"[Certificates] Could not load notification template for {org_name}: {e}")
            return None

    async def _notify_with_template(
        self,
        certificate: Certificate,
        email_service: EmailService,
        template_html: Optional[str]
    ) -> NotificationOutcome:
        if not certificate.recipient_email:
            return NotificationOutcome(status=NOTIFICATION_SKIPPED)
        if template_html is None:
            return NotificationOutcome(status=NOTIFICATION_FAILED, error="Email template unavailable")
        return await self.notify(certificate, email_service, template_html)

    async def _notify_batch(
        self,
        certificates: List[Certificate],
        email_service: EmailService,
        template_html: Optional[str]
    ) -> List[NotificationOutcome]:
        """
        Notify every committed bulk row concurrently.

        Each send is bounded by email_service.timeout, so the batch waits at most
        about one timeout per `concurrency` rows rather than one per row.
        """
        semaphore = asyncio.Semaphore(max(1, self.notify_concurrency))

        async def _send(certificate: Certificate) -> NotificationOutcome:
            async with semaphore:
                return await self._notify_with_template(certificate, email_service, template_html)

        results = await asyncio.gather(
            *(_send(certificate) for certificate in certificates),
            return_exceptions=True,
        )

        outcomes = []
        for certificate, outcome in zip(certificates, results):
            if isinstance(outcome, BaseException):
                outcome = NotificationOutcome(status=NOTIFICATION_FAILED, error=str(outcome))
                logger.log_notification(certificate.unique_id, outcome.status, outcome.error)
            outcomes.append(outcome)
        return outcomes

    # ==================== ISSUANCE ====================

    async def issue_certificate(
        self,
        db: AsyncSession,
        issuer: Issuer,
        data: CertificateCreate,
        email_service: EmailService
    ) -> IssuanceResult:
        snapshot = self._snapshot(issuer)
        certificate = await self._insert(db, snapshot, data)
        logger.log_issuance(snapshot.ocid, snapshot.org_name, [certificate.unique_id])

        template_html = None
        if certificate.recipient_email:
            template_html = await self._notification_template(db, snapshot.org_name)
        notification = await self._notify_with_template(certificate, email_service, template_html)
        return IssuanceResult(certificate=certificate, notification=notification)

    async def issue_bulk(
        self,
        db: AsyncSession,
        issuer: Issuer,
        rows: List[Any],
        email_service: EmailService
    ) -> BulkResult:
        """
        Issue one certificate per row; rows succeed or fail independently.

        Raises:
            ValidationError: rows is empty
            ProfileIncompleteError: issuer has no organization name
        """
        if not rows:
            raise ValidationError("Certificates array is required", field="certificates")
        snapshot = self._snapshot(issuer)

        result = BulkResult(total=len(rows))
        template_html = await self._notification_template(db, snapshot.org_name)

        for row in rows:
            try:
                data = CertificateCreate.model_validate(row)
            except PydanticValidationError as e:
                result.errors.append({"data": row, "error": describe_validation_error(e)})
                continue

            try:
                certificate = await self._insert(db, snapshot, data)
            except CertificateIdCollisionError as e:
                result.errors.append({"data": row, "error": e.message})
                continue
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"[Certificates] Bulk row insert failed for {snapshot.ocid}: {e}")
                result.errors.append({"data": row, "error": "Failed to create certificate"})
                continue

            result.certificates.append(certificate)

        await self._notify_batch(result.certificates, email_service, template_html)

        logger.log_issuance(
            snapshot.ocid,
            snapshot.org_name,
            [c.unique_id for c in result.certificates],
            mode="bulk",
            failed=result.failed,
        )
        return result

    # ==================== LOOKUP ====================

    def clamp_page(self, limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
        if limit is None:
            limit = settings.CERTIFICATE_PAGE_DEFAULT
        limit = max(1, min(limit, settings.CERTIFICATE_PAGE_MAX))
        offset = max(0, offset or 0)
        return limit, offset

    async def list_for_issuer(
        self,
        db: AsyncSession,
        issuer: Issuer,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> Dict[str, Any]:
        limit, offset = self.clamp_page(limit, offset)

        total = await db.scalar(
            select(func.count(Certificate.id)).where(Certificate.generated_by == issuer.ocid)
        )
        result = await db.execute(
            select(Certificate)
            .where(Certificate.generated_by == issuer.ocid)
            .order_by(Certificate.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return {
            "total": total or 0,
            "limit": limit,
            "offset": offset,
            "certificates": list(result.scalars().all()),
        }

    async def get_public_certificate(self, db: AsyncSession, unique_id: str) -> Certificate:
        result = await db.execute(select(Certificate).where(Certificate.unique_id == unique_id))
        certificate = result.scalar_one_or_none()
        if not certificate:
            raise CertificateNotFoundError(unique_id)
        return certificate


certificate_service = CertificateService(
    max_attempts=settings.CERTIFICATE_ID_MAX_ATTEMPTS,
    notify_concurrency=settings.EMAIL_BULK_CONCURRENCY,
)
