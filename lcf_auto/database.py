"""
Database engine, session factory and declarative base.
"""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from lcf_auto.config import get_settings
from lcf_auto.exceptions import StoreNotConfiguredError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every model."""


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory

    if _engine is None:
        settings = get_settings()
        if not settings.database_url:
            raise StoreNotConfiguredError()

        kwargs = {"echo": settings.debug}
        if _is_memory_sqlite(settings.database_url):
            # One shared connection, otherwise every checkout sees a new empty database
            kwargs.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )

        _engine = create_async_engine(settings.database_url, **kwargs)
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    get_engine()
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session for the duration of a request."""
    async with get_session_factory()() as session:
        yield session


async def init_db() -> None:
    """Create all tables and seed the administrator account."""
    # Register every model on Base.metadata
    from lcf_auto import models  # noqa: F401
    from lcf_auto.auth import get_password_hash
    from lcf_auto.models.user import User, UserRole

    settings = get_settings()

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        result = await session.execute(select(User).where(User.email == settings.admin_email))
        if result.scalar_one_or_none() is None:
            session.add(
                User(
                    email=settings.admin_email,
                    hashed_password=get_password_hash(settings.admin_password),
                    first_name="Admin",
                    last_name="LCF",
                    role=UserRole.ADMIN,
                )
            )
            await session.commit()
            logger.info("Admin user created: %s", settings.admin_email)


async def dispose_db() -> None:
    """Close pooled connections. The engine is recreated lazily on next use."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
