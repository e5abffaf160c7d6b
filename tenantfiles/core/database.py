"""Async engine and session factory for the tenant tables."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tenantfiles.core.config import get_settings

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def async_database_url(url: str) -> str:
    """Return ``url`` with an async driver when only the dialect is given.

    ``postgresql://`` becomes ``postgresql+asyncpg://`` and ``sqlite://``
    becomes ``sqlite+aiosqlite://``; URLs naming a driver are left alone.
    """
    parsed = make_url(url)
    driver = _ASYNC_DRIVERS.get(parsed.drivername)
    if driver is None:
        return url
    return parsed.set(drivername=driver).render_as_string(hide_password=False)


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine used by the API."""
    url = async_database_url(url)
    options: dict = {"echo": echo}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    if "test" in url:
        options["poolclass"] = NullPool
    return create_async_engine(url, **options)


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.database_echo)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session.

    Route handlers commit their own unit of work; anything left pending when
    the handler raises is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
