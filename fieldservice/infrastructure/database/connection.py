# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Central database connection management using SQLAlchemy async.

The central database is the tenant registry: tenants, the plugin catalog and
per-tenant plugin installations.

Example:
    from fieldservice.infrastructure.database.connection import (
        init_central_database,
        get_central_session,
    )

    # Initialize at application startup
    await init_central_database(settings)

    # Use in request handlers
    async with get_central_session() as session:
        result = await session.execute(select(Tenant))
        tenants = result.scalars().all()
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fieldservice.infrastructure.database.models.base import CentralBase

if TYPE_CHECKING:
    from fieldservice.core.config.settings import Settings

# Module-level state for the central database connection
_central_engine: Optional[AsyncEngine] = None
_central_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def engine_options(
    url: str,
    pool_size: int,
    max_overflow: int,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> dict[str, Any]:
    """Build create_async_engine keyword arguments for a URL.

    SQLite engines use SQLAlchemy's default pool for the driver, which does
    not accept sizing arguments.

    Args:
        url: Database URL.
        pool_size: Connection pool size.
        max_overflow: Overflow connections above pool_size.
        pool_recycle: Seconds before a connection is recycled.
        echo: Log SQL statements.

    Returns:
        Keyword arguments for create_async_engine.
    """
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=pool_recycle,
        )
    return options


def _make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_central_database(settings: "Settings") -> None:
    """Initialize the central database connection pool.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _central_engine, _central_sessionmaker

    try:
        _central_engine = create_async_engine(
            settings.central_db.url,
            **engine_options(
                settings.central_db.url,
                pool_size=settings.central_db.pool_size,
                max_overflow=settings.central_db.max_overflow,
                echo=settings.central_db.echo,
            ),
        )
        _central_sessionmaker = _make_sessionmaker(_central_engine)
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseError("Failed to initialize central database connection", e) from e


async def create_central_schema() -> None:
    """Create registry tables that do not exist yet.

    Raises:
        DatabaseError: If the database has not been initialized or DDL fails.
    """
    engine = get_central_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(CentralBase.metadata.create_all)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create central schema", e) from e


async def close_central_database() -> None:
    """Close the central database connection pool."""
    global _central_engine, _central_sessionmaker

    if _central_engine is not None:
        await _central_engine.dispose()
        _central_engine = None
        _central_sessionmaker = None


def get_central_engine() -> AsyncEngine:
    """Get the central database async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _central_engine is None:
        raise DatabaseError(
            "Central database not initialized. Call init_central_database() first."
        )
    return _central_engine


def get_central_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the central database sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _central_sessionmaker is None:
        raise DatabaseError(
            "Central database not initialized. Call init_central_database() first."
        )
    return _central_sessionmaker


@asynccontextmanager
async def get_central_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the central database.

    The session is committed on success and rolled back on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_central_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_central_database_connection() -> bool:
    """Check if the central database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _central_engine is None:
        return False

    try:
        async with _central_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
