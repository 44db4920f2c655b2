# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Connection pool for the notification database.

One pool serves every school; rows are scoped by their ``school_id``
column. The SQLAlchemy adapters of the notification store open their own
sessions from the factory returned here, so nothing else in the process
needs the engine.

Example:
    factory = await init_notification_database(get_settings())
    service = get_notification_service(factory)
    ...
    await close_notification_database()
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Raised when the notification database is unavailable.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy error, if any.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_notification_database(
    settings: "Settings",
) -> async_sessionmaker[AsyncSession]:
    """Create the engine and session factory, once per process.

    Calling it again returns the existing factory.

    Args:
        settings: Application settings; ``database`` holds the pool options.

    Returns:
        Session factory for the notification store adapters.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    global _engine, _session_factory

    if _session_factory is not None:
        return _session_factory

    db = settings.database
    try:
        engine = create_async_engine(
            db.url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
            echo=settings.debug,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize notification database", e) from e

    _engine = engine
    # Rows stay readable after commit; from_record maps them outside the session
    _session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return _session_factory


async def close_notification_database() -> None:
    """Dispose of the pool. Safe to call when it was never opened."""
    global _engine, _session_factory

    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the factory created by init_notification_database().

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _session_factory is None:
        raise DatabaseError(
            "Notification database not initialized, call init_notification_database() first"
        )
    return _session_factory
