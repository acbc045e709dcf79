# File: app/database.py

from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from .config import settings


def async_database_url(url: str) -> str:
    return url.replace("postgresql://", "postgresql+asyncpg://")


def make_session_factory(url: str, echo: bool = False):
    """Build an async engine and its session factory for the given URL."""
    engine = create_async_engine(async_database_url(url), echo=echo)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine, AsyncSessionLocal = make_session_factory(settings.DATABASE_URL, echo=settings.DEBUG)

Base = declarative_base()


async def init_db(engine=None):
    """Create all tables."""
    # Models must be registered on Base.metadata before create_all
    from . import models  # noqa: F401

    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

