"""
Research Grants Portal - Database engine and sessions

SQLite (aiosqlite) for development and tests, PostgreSQL (asyncpg) in
production. The engine is created on first use so that importing models
never opens a connection.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, Dict, Optional

from grantsportal.core.config import settings
from grantsportal.core.logging_config import logger

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

DRIVER_PREFIXES = (
    ("postgresql://", "postgresql+asyncpg://"),
    ("postgres://", "postgresql+asyncpg://"),
    ("sqlite:///", "sqlite+aiosqlite:///"),
)


def get_database_url() -> str:
    """DATABASE_URL with the async driver filled in"""
    db_url = settings.DATABASE_URL
    for plain, async_prefix in DRIVER_PREFIXES:
        if db_url.startswith(plain):
            return async_prefix + db_url[len(plain):]
    return db_url


def engine_options(db_url: str) -> Dict[str, Any]:
    """
    Pooling per backend:
    - SQLite: NullPool, one connection per session
    - PostgreSQL outside production: NullPool
    - PostgreSQL in production: QueuePool sized by DB_POOL_SIZE / DB_MAX_OVERFLOW
    """
    options: Dict[str, Any] = {"echo": settings.DB_ECHO}
    if db_url.startswith("sqlite"):
        options.update(connect_args={"check_same_thread": False}, poolclass=NullPool)
    elif not settings.is_production:
        options.update(poolclass=NullPool)
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=1800,
            pool_pre_ping=True,
        )
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_async_engine(db_url, **engine_options(db_url))
        if db_url.startswith("sqlite"):
            event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        logger.info(f"[Database] Engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; leftover pending changes are committed at the end"""
    async with get_session_factory()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables"""
    import grantsportal.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"[Database] {len(Base.metadata.tables)} tables ready")


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
