"""
Database engine and session factory.
Async SQLAlchemy 2.0 on PostgreSQL (asyncpg); SQLite (aiosqlite) when no
PostgreSQL URL is configured.
"""
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from urllib.parse import urlparse
import logging

from app.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _async_database_url(url: str) -> str:
    """
    Map plain driver URLs onto their async dialects.
    postgresql:// -> postgresql+asyncpg://, sqlite:// -> sqlite+aiosqlite://
    """
    if not url:
        return "sqlite+aiosqlite:///:memory:"
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


def _uses_postgres(url: str) -> bool:
    return bool(url) and url.startswith("postgres")


_engine_args = {"echo": False}

# Pool settings only apply to PostgreSQL
if _uses_postgres(settings.DATABASE_URL):
    _engine_args.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {
            "server_settings": {"application_name": "restaurant-gallery-backend"}
        },
    })

engine = create_async_engine(_async_database_url(settings.DATABASE_URL), **_engine_args)

# Repositories open one session per operation from this factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency yielding a session that commits on success."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}", exc_info=True)
            raise


def _describe_database_url(url: str) -> str:
    """Host/port/database summary for log lines; never includes credentials."""
    parsed = urlparse(url)
    if not parsed.hostname:
        raise ValueError("No hostname found in DATABASE_URL")
    return f"host={parsed.hostname} port={parsed.port or 5432} database={parsed.path.lstrip('/') or 'postgres'}"


def _connection_hint(error: Exception) -> str:
    message = str(error).lower()
    if "getaddrinfo" in message or "name or service not known" in message:
        return "hostname could not be resolved"
    if "connection refused" in message or "timeout" in message:
        return "database server unreachable"
    if "authentication failed" in message or "password" in message:
        return "credentials rejected"
    return type(error).__name__


async def create_tables(bind=None):
    """
    Create gallery tables directly from the models.
    Used for the SQLite fallback and tests; PostgreSQL schemas are managed by Alembic.
    """
    from app import models  # noqa: F401  (registers tables on Base.metadata)

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def init_db():
    """
    Prepare the database on startup.
    SQLite gets its tables created; PostgreSQL is only checked for connectivity.
    """
    if not _uses_postgres(settings.DATABASE_URL):
        logger.warning("DATABASE_URL not set to PostgreSQL, using SQLite and creating tables from models")
        await create_tables()
        return

    target = _describe_database_url(settings.DATABASE_URL)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database connection failed ({_connection_hint(e)}) for {target}: {str(e)}")
        raise
    logger.info(f"Database connection initialized: {target}")


async def close_db():
    """Dispose of pooled connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
