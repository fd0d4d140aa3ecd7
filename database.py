from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config.settings import settings, IS_PRODUCTION

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./kittycare.db"

# Create declarative base for models
Base = declarative_base()


def build_engine(database_url: Optional[str] = None, **engine_kwargs) -> AsyncEngine:
    """
    Create the async engine for the given URL (defaults to settings.database_url).

    Called once from the application lifespan; nothing is connected at import time.
    """
    url = database_url or settings.database_url or DEFAULT_DATABASE_URL

    # Validate production database configuration
    if IS_PRODUCTION and "sqlite" in url.lower():
        raise RuntimeError("SQLite is forbidden in production. Use a PostgreSQL DATABASE_URL.")

    engine = create_async_engine(url, echo=False, future=True, **engine_kwargs)

    if url.startswith("sqlite"):
        # SQLite only honours ON DELETE CASCADE with foreign keys switched on
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    """Create the async session factory bound to engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """
    Initialize the database by creating all tables.
    This should be called on application startup.
    """
    async with engine.begin() as conn:
        # Import models here to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields a database session.

    The session factory is created in the lifespan and stored on app.state.
    Services may commit earlier themselves; the final commit here is then a no-op.
    """
    session_factory: async_sessionmaker = request.app.state.sessionmaker
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
