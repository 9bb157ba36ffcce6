from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from crowdlend.core.config import settings, Settings

Base = declarative_base()


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    """Build the async engine; pool and isolation options only apply to PostgreSQL"""
    options = {"echo": config.DATABASE_ECHO, "future": True}
    if config.DATABASE_URL.startswith("postgresql"):
        options.update(
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            isolation_level=config.DATABASE_ISOLATION_LEVEL,
        )
    return create_async_engine(config.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


# PostgreSQL Async Engine
async_engine = create_engine_from_settings(settings)

# Async Session Factory
AsyncSessionLocal = create_session_factory(async_engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Unit of work: everything done on the session inside the block is
    committed together, or rolled back together if anything raises.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
