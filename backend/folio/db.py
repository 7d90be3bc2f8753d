from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .settings import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Base declarative class for SQLAlchemy models."""


# sqlite (tests, local dev) connections are not reused across event loops
_engine_kwargs = {} if settings.is_postgres else {"poolclass": NullPool}

engine = create_async_engine(
    settings.async_database_url,
    future=True,
    echo=False,
    **_engine_kwargs,
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that outlives a request (batch jobs, discovery)."""
    return AsyncSessionLocal
