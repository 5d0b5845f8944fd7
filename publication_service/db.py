"""Async database engine, session factory and declarative base (SQLAlchemy 2.0)."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from publication_service.config import get_settings

settings = get_settings()


def build_engine(database_url: str) -> AsyncEngine:
    """Engine for postgresql+asyncpg in production, sqlite+aiosqlite in tests."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Concurrent writers wait on the file lock instead of failing immediately.
        connect_args["timeout"] = 30
    return create_async_engine(database_url, future=True, connect_args=connect_args)


engine = build_engine(settings.database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for all models."""

    pass


async def create_all() -> None:
    """Create tables directly from metadata (local runs and tests; production uses Alembic)."""
    import publication_service.models  # noqa: F401  register mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all() -> None:
    import publication_service.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields an async session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
