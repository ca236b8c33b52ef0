"""
Issuer Service - provisioning and profile rules for certificate issuers

Handles:
- Get-or-create on first login (identity proxy uid is the key)
- Disabled-account refusal
- Profile updates, including the write-once organization name
- Support operations used by the admin CLI
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gdgoc_certs.core.exceptions import (
    AccountDisabledError,
    DuplicateIssuerError,
    IssuerNotFoundError,
    OrgNameLockedError,
)
from gdgoc_certs.core.logging_config import logger
from gdgoc_certs.core.types import utcnow
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.identity import CallerIdentity
from gdgoc_certs.schemas.issuer import ProfileUpdate


@dataclass(frozen=True)
class RenameIssuer:
    """Change the display name only"""
    name: str


@dataclass(frozen=True)
class SetOrganization:
    """Set and lock the organization name, optionally renaming too"""
    org_name: str
    name: Optional[str] = None


ProfileChange = Union[RenameIssuer, SetOrganization]


class IssuerService:
    """Service for issuer provisioning and profile management"""

    async def get_by_ocid(self, db: AsyncSession, ocid: str) -> Optional[Issuer]:
        result = await db.execute(select(Issuer).where(Issuer.ocid == ocid))
        return result.scalar_one_or_none()

    async def get_profile(self, db: AsyncSession, ocid: str) -> Issuer:
        issuer = await self.get_by_ocid(db, ocid)
        if not issuer:
            raise IssuerNotFoundError(ocid)
        return issuer

    async def resolve_issuer(
        self,
        db: AsyncSession,
        identity: CallerIdentity
    ) -> Tuple[Issuer, bool]:
        """
        Return the issuer for this identity, creating it on first login.

        Returns:
            Tuple of (issuer, created)

        Raises:
            AccountDisabledError: the issuer exists with can_login = false
            DuplicateIssuerError: another issuer already owns this email
        """
        issuer = await self.get_by_ocid(db, identity.id)
        if issuer:
            self._ensure_can_login(issuer)
            return issuer, False

        issuer = Issuer(
            ocid=identity.id,
            name=identity.name,
            email=identity.email,
            org_name=None,
            can_login=True,
        )
        db.add(issuer)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            # A concurrent first login for the same uid wins; anything else is an email clash
            existing = await self.get_by_ocid(db, identity.id)
            if existing is None:
                logger.log_auth_event(
                    event="provision",
                    success=False,
                    user_email=identity.email,
                    reason="email already registered",
                    ocid=identity.id,
                )
                raise DuplicateIssuerError()
            self._ensure_can_login(existing)
            return existing, False

        logger.log_auth_event(event="provision", success=True, user_email=identity.email, ocid=identity.id)
        return issuer, True

    def _ensure_can_login(self, issuer: Issuer) -> None:
        if not issuer.can_login:
            logger.log_auth_event(
                event="login",
                success=False,
                user_email=issuer.email,
                reason="account disabled",
                ocid=issuer.ocid,
            )
            raise AccountDisabledError()

    # ==================== PROFILE ====================

    def plan_profile_update(self, issuer: Issuer, data: ProfileUpdate) -> ProfileChange:
        """Pick the update variant; refuses a second organization name up front"""
        if data.org_name is not None:
            if issuer.org_name_locked:
                raise OrgNameLockedError()
            return SetOrganization(org_name=data.org_name, name=data.name)
        return RenameIssuer(name=data.name)

    async def update_profile(
        self,
        db: AsyncSession,
        issuer: Issuer,
        data: ProfileUpdate
    ) -> Issuer:
        ocid = issuer.ocid
        change = self.plan_profile_update(issuer, data)
        now = utcnow()

        stmt = update(Issuer).where(Issuer.ocid == ocid)
        if isinstance(change, SetOrganization):
            values = {"org_name": change.org_name, "org_name_set_at": now, "updated_at": now}
            if change.name:
                values["name"] = change.name
            # Value and lock land in one statement; the guard makes a lost race a no-op
            stmt = stmt.where(or_(Issuer.org_name.is_(None), Issuer.org_name_set_at.is_(None)))
        else:
            values = {"name": change.name, "updated_at": now}

        result = await db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            if isinstance(change, SetOrganization):
                logger.warning(f"[Profile] Organization name already locked for {ocid}")
                raise OrgNameLockedError()
            raise IssuerNotFoundError(ocid)

        await db.commit()
        await db.refresh(issuer)

        if isinstance(change, SetOrganization):
            logger.info(f"[Profile] Organization name set and locked for {ocid}: {change.org_name}")
        else:
            logger.info(f"[Profile] Name updated for {ocid}")
        return issuer

    # ==================== SUPPORT OPERATIONS ====================

    async def list_issuers(self, db: AsyncSession) -> List[Issuer]:
        result = await db.execute(select(Issuer).order_by(Issuer.created_at.desc()))
        return list(result.scalars().all())

    async def set_login_enabled(self, db: AsyncSession, ocid: str, enabled: bool) -> Issuer:
        issuer = await self.get_profile(db, ocid)
        issuer.can_login = enabled
        issuer.updated_at = utcnow()
        await db.commit()
        logger.info(f"[Profile] Login {'enabled' if enabled else 'disabled'} for {ocid}")
        return issuer

    async def unlock_org_name(self, db: AsyncSession, ocid: str) -> Issuer:
        """Clear the organization name so the issuer can set it again"""
        issuer = await self.get_profile(db, ocid)
        previous = issuer.org_name
        issuer.org_name = None
        issuer.org_name_set_at = None
        issuer.updated_at = utcnow()
        await db.commit()
        logger.info(f"[Profile] Organization name unlocked for {ocid} (was {previous!r})")
        return issuer


issuer_service = IssuerService()
