from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
from fastapi import Request
from typing import AsyncGenerator, Optional

from gdgoc_certs.core.config import Settings

Base = declarative_base()


def get_database_url(raw_url: str) -> str:
    """Get properly formatted async database URL"""
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return raw_url


class Database:
    """
    Owns the engine and session factory for one application instance.

    Built by the composition root at startup and disposed at shutdown;
    request handlers reach it through the get_db dependency.

    Connection pooling strategy:
    - SQLite: NullPool
    - Development: NullPool (simpler debugging)
    - Production: queue pool with pre-ping and recycling
    """

    def __init__(self, settings: Settings, url: Optional[str] = None):
        self.url = get_database_url(url or settings.DATABASE_URL)

        if "sqlite" in self.url:
            self.engine: AsyncEngine = create_async_engine(
                self.url,
                echo=settings.DB_ECHO,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        elif settings.DEBUG or settings.ENVIRONMENT == "development":
            self.engine = create_async_engine(
                self.url,
                echo=settings.DB_ECHO,
                poolclass=NullPool,
            )
        else:
            self.engine = create_async_engine(
                self.url,
                echo=settings.DB_ECHO,
                poolclass=AsyncAdaptedQueuePool,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                pool_pre_ping=True,  # Verify connections before use
            )

        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    def session(self) -> AsyncSession:
        """Create a new async session"""
        return self.session_factory()

    async def create_tables(self) -> None:
        """Create any missing tables"""
        import gdgoc_certs.models  # noqa: F401  register models on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable"""
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def close(self) -> None:
        """Dispose of the connection pool"""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session - rolled back if the request fails"""
    database = get_database(request)
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
