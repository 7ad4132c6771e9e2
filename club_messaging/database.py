"""Engine, session factory and the conversation store built on them."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from club_messaging import config


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


if not config.DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")

engine = create_async_engine(config.DATABASE_URL, echo=config.SQL_DEBUG, future=True)

# Rows handed out as pydantic copies must stay readable after commit
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        yield session


async def close_db() -> None:
    """Dispose pooled connections on shutdown."""
    await engine.dispose()
