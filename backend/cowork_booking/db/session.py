"""
Async engine and session factory.

Engines are created lazily and cached per URL so importing the package
never requires a database driver to be reachable.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cowork_booking.core.config import get_settings

_engines: dict[str, AsyncEngine] = {}
_sessionmakers: dict[str, async_sessionmaker[AsyncSession]] = {}


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    settings = get_settings()
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def get_sessionmaker(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    url = database_url or get_settings().DATABASE_URL
    factory = _sessionmakers.get(url)
    if factory is None:
        engine = create_async_engine(url, echo=False, **_engine_options(url))
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        _engines[url] = engine
        _sessionmakers[url] = factory
    return factory


async def dispose_engine(database_url: Optional[str] = None) -> None:
    url = database_url or get_settings().DATABASE_URL
    engine = _engines.pop(url, None)
    _sessionmakers.pop(url, None)
    if engine is not None:
        await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on error."""
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
