# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementations of the notification store and identity directory.

Every operation runs in its own session from the given session factory.
SQLAlchemy errors are rolled back and re-raised as StoreError.

Example:
    from src.infrastructure.database import get_session_factory

    factory = get_session_factory()
    store = SqlAlchemyNotificationStore(factory)
    directory = SqlAlchemyIdentityDirectory(factory)
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.expression import ColumnElement, Executable

from src.core.config.settings import MAX_WRITE_BATCH_SIZE
from src.infrastructure.database.models import (
    NotificationRecord,
    NotificationSettingsRecord,
    SchoolUser,
)
from src.infrastructure.notifications.store.base import (
    IdentityDirectory,
    NotificationNotFoundError,
    NotificationQuery,
    NotificationStore,
    StoreError,
    WriteBatch,
)
from src.infrastructure.notifications.types import (
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationKind,
    NotificationPriority,
    UserNotificationPreferences,
)
from src.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _session_scope(
    session_factory: async_sessionmaker[AsyncSession],
    action: str,
) -> AsyncIterator[AsyncSession]:
    """Open a session, translating SQLAlchemy errors into StoreError."""
    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Failed to %s: %s", action, str(e))
            raise StoreError(f"Failed to {action}", e) from e


def _recipient(school_id: str, user_id: str) -> list[ColumnElement[bool]]:
    return [
        NotificationRecord.school_id == school_id,
        NotificationRecord.user_id == user_id,
    ]


def to_record(school_id: str, notification: Notification) -> NotificationRecord:
    """Convert a notification into its table row."""
    actions: list[dict[str, Any]] | None = None
    if notification.actions:
        actions = [action.to_dict() for action in notification.actions]

    return NotificationRecord(
        id=notification.id,
        school_id=school_id,
        user_id=notification.user_id,
        kind=notification.kind.value,
        category=notification.category.value,
        priority=notification.priority.value,
        title=notification.title,
        message=notification.message,
        link=notification.link,
        read=notification.read,
        related_id=notification.related_id,
        icon=notification.icon,
        color=notification.color,
        actions=actions,
        extra_data=notification.metadata,
        send_push=notification.send_push,
        created_at=notification.created_at,
        expires_at=notification.expires_at,
    )


def from_record(record: NotificationRecord) -> Notification:
    """Convert a table row back into a notification."""
    actions = None
    if record.actions:
        actions = [NotificationAction.from_dict(action) for action in record.actions]

    return Notification(
        id=record.id,
        user_id=record.user_id,
        title=record.title,
        message=record.message,
        kind=NotificationKind(record.kind),
        category=NotificationCategory(record.category),
        priority=NotificationPriority(record.priority),
        created_at=ensure_utc(record.created_at),
        expires_at=ensure_utc(record.expires_at),
        link=record.link,
        read=record.read,
        related_id=record.related_id,
        icon=record.icon,
        color=record.color,
        actions=actions,
        metadata=record.extra_data,
        send_push=record.send_push,
    )


class SqlAlchemyWriteBatch(WriteBatch):
    """Write batch applied in a single database transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        school_id: str,
        max_size: int,
    ) -> None:
        super().__init__(school_id, max_size)
        self._session_factory = session_factory
        self._records: list[NotificationRecord] = []
        self._statements: list[Executable] = []

    def _set(self, notification: Notification) -> None:
        self._records.append(to_record(self.school_id, notification))

    def _mark_read(self, user_id: str, notification_id: str) -> None:
        self._statements.append(
            update(NotificationRecord)
            .where(
                *_recipient(self.school_id, user_id),
                NotificationRecord.id == notification_id,
            )
            .values(read=True)
        )

    def _delete(self, user_id: str, notification_id: str) -> None:
        self._statements.append(
            delete(NotificationRecord).where(
                *_recipient(self.school_id, user_id),
                NotificationRecord.id == notification_id,
            )
        )

    async def commit(self) -> None:
        if not len(self):
            return

        async with _session_scope(self._session_factory, "commit notification batch") as session:
            if self._records:
                session.add_all(self._records)
            for statement in self._statements:
                await session.execute(statement)
            await session.commit()

        logger.debug("Committed notification batch of %d writes", len(self))


class SqlAlchemyNotificationStore(NotificationStore):
    """Notification store backed by the notifications table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_batch_size: int = MAX_WRITE_BATCH_SIZE,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Async session factory for the notification database.
            max_batch_size: Largest number of writes per transaction.
        """
        self._session_factory = session_factory
        self.max_batch_size = max_batch_size

    def new_id(self) -> str:
        return str(uuid.uuid4())

    async def create(self, school_id: str, notification: Notification) -> str:
        async with _session_scope(self._session_factory, "create notification") as session:
            session.add(to_record(school_id, notification))
            await session.commit()
        return notification.id

    async def get(
        self, school_id: str, user_id: str, notification_id: str
    ) -> Notification | None:
        stmt = select(NotificationRecord).where(
            *_recipient(school_id, user_id),
            NotificationRecord.id == notification_id,
        )
        async with _session_scope(self._session_factory, "get notification") as session:
            result = await session.execute(stmt)
            record = result.scalar_one_or_none()
        return from_record(record) if record else None

    async def query(
        self, school_id: str, user_id: str, query: NotificationQuery
    ) -> list[Notification]:
        stmt = select(NotificationRecord).where(*_recipient(school_id, user_id))
        if query.read is not None:
            stmt = stmt.where(NotificationRecord.read == query.read)
        if query.category is not None:
            stmt = stmt.where(NotificationRecord.category == query.category.value)
        if query.start_after is not None:
            stmt = stmt.where(NotificationRecord.created_at < query.start_after)
        stmt = stmt.order_by(NotificationRecord.created_at.desc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        async with _session_scope(self._session_factory, "query notifications") as session:
            result = await session.execute(stmt)
            records = result.scalars().all()
        return [from_record(record) for record in records]

    async def count(
        self,
        school_id: str,
        user_id: str,
        read: bool | None = None,
        category: NotificationCategory | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(NotificationRecord)
            .where(*_recipient(school_id, user_id))
        )
        if read is not None:
            stmt = stmt.where(NotificationRecord.read == read)
        if category is not None:
            stmt = stmt.where(NotificationRecord.category == category.value)

        async with _session_scope(self._session_factory, "count notifications") as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def set_read(
        self, school_id: str, user_id: str, notification_id: str
    ) -> None:
        stmt = (
            update(NotificationRecord)
            .where(
                *_recipient(school_id, user_id),
                NotificationRecord.id == notification_id,
            )
            .values(read=True)
        )
        async with _session_scope(self._session_factory, "mark notification as read") as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                raise NotificationNotFoundError(
                    f"Notification {notification_id} not found for user {user_id}"
                )
            await session.commit()

    async def delete(
        self, school_id: str, user_id: str, notification_id: str
    ) -> None:
        stmt = delete(NotificationRecord).where(
            *_recipient(school_id, user_id),
            NotificationRecord.id == notification_id,
        )
        async with _session_scope(self._session_factory, "delete notification") as session:
            await session.execute(stmt)
            await session.commit()

    def batch(self, school_id: str) -> SqlAlchemyWriteBatch:
        return SqlAlchemyWriteBatch(self._session_factory, school_id, self.max_batch_size)


class SqlAlchemyIdentityDirectory(IdentityDirectory):
    """Reads user roles and notification settings from the database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user_role(self, school_id: str, user_id: str) -> str | None:
        async with _session_scope(self._session_factory, "read user role") as session:
            user = await session.get(SchoolUser, (school_id, user_id))
        return user.role if user else None

    async def get_notification_preferences(
        self, school_id: str, user_id: str
    ) -> UserNotificationPreferences | None:
        async with _session_scope(self._session_factory, "read notification settings") as session:
            record = await session.get(NotificationSettingsRecord, (school_id, user_id))

        if record is None:
            return None

        return UserNotificationPreferences.model_validate(
            {
                "category_preferences": record.category_preferences or {},
                "quiet_hours_start": record.quiet_hours_start,
                "quiet_hours_end": record.quiet_hours_end,
                "quiet_hours_days": record.quiet_hours_days or [],
                "timezone": record.timezone,
            }
        )
