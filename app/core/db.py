from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.core.config import settings


def _async_database_url(url: str) -> str:
    """Map a sync database URL to its async driver.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so they
    are stripped; SSL is enabled via connect_args instead.
    """
    parsed = urlparse(url)
    if parsed.scheme == "sqlite":
        return urlunparse(parsed._replace(scheme="sqlite+aiosqlite"))
    if parsed.scheme.startswith("sqlite"):
        return url
    scheme = "postgresql+asyncpg" if parsed.scheme == "postgresql" else parsed.scheme
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.pop("sslmode", None)
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    return urlunparse((scheme, parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment))


def _engine_kwargs() -> dict[str, Any]:
    if settings.is_sqlite:
        # A single shared connection keeps in-memory databases alive across sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "connect_args": {"ssl": True},
    }


async_database_url = _async_database_url(settings.database_url)

engine = create_async_engine(
    async_database_url,
    echo=settings.env == "development" and not settings.is_sqlite,
    **_engine_kwargs(),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    # Register tables on the shared metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
