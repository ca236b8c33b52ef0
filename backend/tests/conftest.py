"""
GDGoC Certificates - Test Configuration and Fixtures
"""
import os
import asyncio
from typing import AsyncGenerator, Callable, Dict, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

# Set testing environment before the package reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['DB_CREATE_TABLES'] = 'false'
os.environ['SMTP_USER'] = 'smtp-user'
os.environ['SMTP_PASSWORD'] = 'smtp-password'

from gdgoc_certs.main import app
from gdgoc_certs.core.config import settings
from gdgoc_certs.core.database import Database, get_db
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.modules.auth.identity import CallerIdentity
from gdgoc_certs.schemas.issuer import ProfileUpdate
from gdgoc_certs.services.email_service import EmailService, get_email_service
from gdgoc_certs.services.issuer_service import issuer_service

fake = Faker()


class RecordingEmailService(EmailService):
    """
    EmailService that records messages instead of talking SMTP.

    mode: "ok" (sent), "fail" (send returns False), "raise" (send raises),
    "hang" (send outlives the timeout), "slow" (sent after `delay` seconds)
    """

    def __init__(self, mode: str = "ok", delay: float = 0.3):
        super().__init__(settings)
        self.mode = mode
        self.delay = delay
        self.sent = []

    async def send_email(self, to_email, subject, html_content, text_content=None) -> bool:
        if self.mode == "raise":
            raise ConnectionError("SMTP relay unreachable")
        if self.mode == "hang":
            await asyncio.sleep(5)
        if self.mode == "slow":
            await asyncio.sleep(self.delay)
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
        })
        return self.mode != "fail"


@pytest.fixture(scope='function')
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database file per test"""
    db = Database(settings, url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture(scope='function')
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with database.session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
async def client(
    database: Database,
    db_session: AsyncSession,
    email_service: RecordingEmailService
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and mailer overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.state.database = database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_identity() -> Callable[..., CallerIdentity]:
    def _make(email: Optional[str] = None) -> CallerIdentity:
        return CallerIdentity(
            id=fake.uuid4(),
            name=fake.name(),
            email=email or fake.unique.email(),
        )
    return _make


def _identity_headers(identity: CallerIdentity) -> Dict[str, str]:
    return {
        settings.AUTH_HEADER_UID: identity.id,
        settings.AUTH_HEADER_NAME: identity.name,
        settings.AUTH_HEADER_EMAIL: identity.email,
    }


@pytest.fixture
def headers_for() -> Callable[[CallerIdentity], Dict[str, str]]:
    """Identity proxy headers for any identity"""
    return _identity_headers


@pytest.fixture
def identity(make_identity) -> CallerIdentity:
    return make_identity()


@pytest.fixture
def auth_headers(identity: CallerIdentity) -> Dict[str, str]:
    """Identity proxy headers for a not-yet-provisioned issuer"""
    return _identity_headers(identity)


@pytest.fixture
async def new_issuer(db_session: AsyncSession, identity: CallerIdentity) -> Issuer:
    """Issuer that has logged in but not set an organization"""
    issuer, _ = await issuer_service.resolve_issuer(db_session, identity)
    return issuer


@pytest.fixture
async def issuer(db_session: AsyncSession, new_issuer: Issuer) -> Issuer:
    """Issuer with a locked organization name"""
    return await issuer_service.update_profile(
        db_session, new_issuer, ProfileUpdate(org_name="GDGoC Test University")
    )


@pytest.fixture
def certificate_payload() -> Dict[str, str]:
    return {
        "recipient_name": fake.name(),
        "recipient_email": fake.free_email(),
        "event_type": "workshop",
        "event_name": "Intro to Flutter",
    }
