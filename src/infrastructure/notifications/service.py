# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for generating and delivering notifications.

This service handles the complete notification flow:
1. Classifying the kind into a category and priority
2. Rendering the kind's template and merging explicit fields over it
3. Checking the recipient's preferences and quiet hours
4. Computing expiry and the role-aware link
5. Persisting the notification record

It also provides the read side used by the notification center: paged
listings, unread counters and mark-read/delete operations.

Error policy:
- Preference and role lookups fail open: on error the notification is
  delivered with permissive defaults.
- Writes fail closed: store errors are logged and re-raised to the caller.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config.settings import NotificationSettings, get_settings
from src.infrastructure.notifications.classifier import category_of, priority_of
from src.infrastructure.notifications.expiry import expiry_for
from src.infrastructure.notifications.links import LinkResolver
from src.infrastructure.notifications.params import DueSoonParams, TemplateParams
from src.infrastructure.notifications.preferences import PreferenceGate
from src.infrastructure.notifications.store.base import (
    IdentityDirectory,
    NotificationQuery,
    NotificationStore,
    WriteBatch,
)
from src.infrastructure.notifications.templates import render
from src.infrastructure.notifications.types import (
    BulkDeliveryResult,
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationError,
    NotificationFields,
    NotificationKind,
    NotificationPage,
    NotificationPriority,
    UserNotificationPreferences,
)
from src.utils.datetime import parse_iso, utc_now
from src.utils.logging import get_logger, log_context

logger = get_logger(__name__)


class NotificationContentError(NotificationError, ValueError):
    """Raised when a notification would have no title or message."""

    pass


@dataclass(frozen=True)
class _Content:
    """Recipient-independent part of a notification."""

    kind: NotificationKind
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    related_id: str | None
    expires_at: datetime | None
    link: str | None
    icon: str | None
    color: str | None
    actions: list[NotificationAction] | None
    metadata: dict[str, Any] | None
    send_push: bool | None


def _first(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


class NotificationService:
    """Service for creating and managing user notifications.

    Attributes:
        settings: Notification pipeline settings.
    """

    def __init__(
        self,
        store: NotificationStore,
        directory: IdentityDirectory,
        settings: NotificationSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the notification service.

        Args:
            store: Notification persistence.
            directory: User roles and preferences.
            settings: Pipeline settings, defaults to the application settings.
            clock: Returns the current aware datetime.
        """
        self.settings = settings or get_settings().notifications
        self._store = store
        self._clock = clock
        self._gate = PreferenceGate(
            directory,
            default_timezone=self.settings.quiet_hours_timezone,
            clock=clock,
        )
        self._links = LinkResolver(directory)
        self._directory = directory

    @property
    def batch_size(self) -> int:
        """Number of writes per atomic batch."""
        return min(self._store.max_batch_size, self.settings.batch_size)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def create_notification(
        self,
        school_id: str,
        user_id: str,
        kind: NotificationKind | str,
        fields: NotificationFields | None = None,
        params: TemplateParams | Mapping[str, Any] | None = None,
        language: str | None = None,
    ) -> str | None:
        """Create a notification for a single user.

        Args:
            school_id: School the recipient belongs to.
            user_id: Recipient user ID.
            kind: Notification kind.
            fields: Explicit fields, which win over the template.
            params: Template parameters; the template is rendered only if given.
            language: Template language, defaults to the configured one.

        Returns:
            The new notification ID, or None if the recipient's
            preferences suppressed it.

        Raises:
            UnknownNotificationKindError: If the kind is unknown.
            TemplateParamsError: If params do not fit the kind.
            NotificationContentError: If no title or message is available.
            StoreError: If persisting fails.
        """
        with log_context(school_id=school_id, user_id=user_id):
            return await self._deliver(school_id, user_id, kind, fields, params, language)

    async def _deliver(
        self,
        school_id: str,
        user_id: str,
        kind: NotificationKind | str,
        fields: NotificationFields | None,
        params: TemplateParams | Mapping[str, Any] | None,
        language: str | None,
    ) -> str | None:
        content = self._compose(kind, fields, params, language)

        should_send = await self._gate.should_deliver(
            school_id, user_id, content.category, content.priority
        )
        if not should_send:
            logger.info(
                "Notification suppressed based on user preferences",
                kind=content.kind.value,
            )
            return None

        link = content.link or await self._links.resolve(
            school_id, user_id, content.kind, content.related_id
        )
        notification = self._build(content, user_id, link, self._clock())

        try:
            await self._store.create(school_id, notification)
        except Exception:
            logger.exception(
                "Error creating notification",
                kind=content.kind.value,
            )
            raise

        logger.debug(
            "Created notification",
            notification_id=notification.id,
            kind=content.kind.value,
        )
        return notification.id

    async def create_notification_bulk(
        self,
        school_id: str,
        user_ids: Iterable[str],
        kind: NotificationKind | str,
        fields: NotificationFields | None = None,
        params: TemplateParams | Mapping[str, Any] | None = None,
        language: str | None = None,
    ) -> BulkDeliveryResult:
        """Create the same notification for many users.

        Duplicate user IDs are dropped. Recipients are written in atomic
        batches of at most batch_size notifications, one batch after the
        other; if a batch fails, earlier batches stay committed.

        Preferences are not consulted: every recipient gets the notification.

        Args:
            school_id: School the recipients belong to.
            user_ids: Recipient user IDs.
            kind: Notification kind.
            fields: Explicit fields, which win over the template.
            params: Template parameters; the template is rendered only if given.
            language: Template language, defaults to the configured one.

        Returns:
            BulkDeliveryResult with the batch sizes and created IDs.

        Raises:
            UnknownNotificationKindError: If the kind is unknown.
            TemplateParamsError: If params do not fit the kind.
            NotificationContentError: If no title or message is available.
            StoreError: If a batch commit fails.
        """
        unique_ids = list(dict.fromkeys(user_ids))
        result = BulkDeliveryResult(recipients_count=len(unique_ids))
        if not unique_ids:
            return result

        content = self._compose(kind, fields, params, language)
        size = self.batch_size

        with log_context(school_id=school_id, kind=content.kind.value):
            for start in range(0, len(unique_ids), size):
                chunk = unique_ids[start:start + size]
                batch = self._store.batch(school_id)
                created: list[str] = []

                for user_id in chunk:
                    # Roles differ per recipient, so links are resolved one by one
                    link = content.link or await self._links.resolve(
                        school_id, user_id, content.kind, content.related_id
                    )
                    notification = self._build(content, user_id, link, self._clock())
                    batch.set(notification)
                    created.append(notification.id)

                try:
                    await batch.commit()
                except Exception:
                    logger.exception(
                        "Error creating bulk notifications",
                        committed_batches=len(result.batch_sizes),
                        failed_batch_size=len(chunk),
                    )
                    raise

                result.batch_sizes.append(len(chunk))
                result.notification_ids.extend(created)

            logger.info(
                "Created bulk notifications",
                recipients=result.recipients_count,
                batches=len(result.batch_sizes),
            )
        return result

    async def notify_assignment_due_soon(
        self,
        school_id: str,
        assignment_id: str,
        assignment_title: str,
        subject_name: str,
        student_ids: Iterable[str],
        days_left: int = 1,
    ) -> BulkDeliveryResult:
        """Remind students that an assignment deadline is approaching.

        Args:
            school_id: School ID.
            assignment_id: Assignment the reminder links to.
            assignment_title: Assignment title.
            subject_name: Subject the assignment belongs to.
            student_ids: Students who have not submitted yet.
            days_left: Days until the deadline.

        Returns:
            BulkDeliveryResult of the fan-out.
        """
        return await self.create_notification_bulk(
            school_id,
            student_ids,
            NotificationKind.ASSIGNMENT_DUE_SOON,
            fields=NotificationFields(related_id=assignment_id),
            params=DueSoonParams(
                title=assignment_title,
                subject_name=subject_name,
                days_left=days_left,
            ),
        )

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def list_notifications(
        self,
        school_id: str,
        user_id: str,
        limit: int | None = None,
        cursor: datetime | str | None = None,
        category: NotificationCategory | str | None = None,
        only_unread: bool = False,
    ) -> NotificationPage:
        """Get a page of a user's notifications, newest first.

        Args:
            school_id: School ID.
            user_id: Recipient user ID.
            limit: Page size, defaults to the configured page size.
            cursor: next_cursor of the previous page.
            category: Only notifications of this category.
            only_unread: Only unread notifications.

        Returns:
            NotificationPage; empty if the store could not be read.
        """
        if limit is None:
            limit = self.settings.page_size
        if isinstance(cursor, str):
            cursor = parse_iso(cursor)
        if category is not None:
            category = NotificationCategory(category)

        query = NotificationQuery(
            read=False if only_unread else None,
            category=category,
            start_after=cursor,
            limit=limit,
        )
        try:
            items = await self._store.query(school_id, user_id, query)
        except Exception:
            logger.exception("Error fetching user notifications", user_id=user_id)
            return NotificationPage()

        next_cursor = items[-1].created_at if items and len(items) == limit else None
        return NotificationPage(items=items, next_cursor=next_cursor)

    async def count_unread(self, school_id: str, user_id: str) -> int:
        """Count a user's unread notifications.

        Returns:
            Unread count; 0 if the store could not be read.
        """
        try:
            return await self._store.count(school_id, user_id, read=False)
        except Exception:
            logger.exception("Error counting unread notifications", user_id=user_id)
            return 0

    async def count_by_category(
        self,
        school_id: str,
        user_id: str,
        only_unread: bool = False,
    ) -> dict[NotificationCategory, int]:
        """Count a user's notifications per category.

        Args:
            school_id: School ID.
            user_id: Recipient user ID.
            only_unread: Count only unread notifications.

        Returns:
            Count for every category, zero-filled; all zeros if the store
            could not be read.
        """
        counts = {category: 0 for category in NotificationCategory}
        query = NotificationQuery(read=False if only_unread else None)
        try:
            items = await self._store.query(school_id, user_id, query)
        except Exception:
            logger.exception("Error counting notifications by category", user_id=user_id)
            return counts

        for notification in items:
            counts[notification.category] += 1
        return counts

    async def get_users_notification_settings(
        self,
        school_id: str,
        user_ids: Iterable[str],
    ) -> dict[str, UserNotificationPreferences]:
        """Get notification preferences for a list of users.

        Users without saved preferences, or whose preferences cannot be
        read, get the defaults (everything enabled, no quiet hours).

        Returns:
            Preferences keyed by user ID.
        """
        settings: dict[str, UserNotificationPreferences] = {}
        for user_id in dict.fromkeys(user_ids):
            try:
                preferences = await self._directory.get_notification_preferences(
                    school_id, user_id
                )
            except Exception:
                logger.exception("Error fetching user notification settings", user_id=user_id)
                preferences = None
            settings[user_id] = preferences or UserNotificationPreferences()
        return settings

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def mark_read(self, school_id: str, user_id: str, notification_id: str) -> None:
        """Mark a notification as read.

        Raises:
            NotificationNotFoundError: If the notification does not exist.
            StoreError: If the update fails.
        """
        try:
            await self._store.set_read(school_id, user_id, notification_id)
        except Exception:
            logger.exception(
                "Error marking notification as read",
                notification_id=notification_id,
                user_id=user_id,
            )
            raise

    async def mark_all_read(
        self,
        school_id: str,
        user_id: str,
        category: NotificationCategory | str | None = None,
    ) -> int:
        """Mark all of a user's unread notifications as read.

        Args:
            school_id: School ID.
            user_id: Recipient user ID.
            category: Only notifications of this category.

        Returns:
            Number of notifications marked.

        Raises:
            StoreError: If reading or updating fails.
        """
        if category is not None:
            category = NotificationCategory(category)

        try:
            unread = await self._store.query(
                school_id, user_id, NotificationQuery(read=False, category=category)
            )
            await self._write_in_batches(
                school_id,
                unread,
                lambda batch, notification: batch.mark_read(user_id, notification.id),
            )
        except Exception:
            logger.exception("Error marking all notifications as read", user_id=user_id)
            raise
        return len(unread)

    async def delete_notification(
        self, school_id: str, user_id: str, notification_id: str
    ) -> None:
        """Delete a notification.

        Raises:
            StoreError: If the deletion fails.
        """
        try:
            await self._store.delete(school_id, user_id, notification_id)
        except Exception:
            logger.exception(
                "Error deleting notification",
                notification_id=notification_id,
                user_id=user_id,
            )
            raise

    async def delete_all_read(self, school_id: str, user_id: str) -> int:
        """Delete all of a user's read notifications.

        Returns:
            Number of notifications deleted.

        Raises:
            StoreError: If reading or deleting fails.
        """
        try:
            read = await self._store.query(school_id, user_id, NotificationQuery(read=True))
            await self._write_in_batches(
                school_id,
                read,
                lambda batch, notification: batch.delete(user_id, notification.id),
            )
        except Exception:
            logger.exception("Error deleting read notifications", user_id=user_id)
            raise
        return len(read)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _compose(
        self,
        kind: NotificationKind | str,
        fields: NotificationFields | None,
        params: TemplateParams | Mapping[str, Any] | None,
        language: str | None,
    ) -> _Content:
        """Merge explicit fields, template output and classifier defaults."""
        kind = NotificationKind.parse(kind)
        fields = fields or NotificationFields()

        template = None
        if params is not None:
            template = render(
                kind, params, language, default_language=self.settings.default_language
            )

        title = _first(fields.title, template.title if template else None)
        message = _first(fields.message, template.message if template else None)
        if not title or not message:
            raise NotificationContentError(
                f"Notification {kind.value} needs a title and message or template params"
            )

        template_actions = list(template.actions) if template and template.actions else None

        return _Content(
            kind=kind,
            title=title,
            message=message,
            category=_first(
                fields.category,
                template.category if template else None,
                category_of(kind),
            ),
            priority=_first(
                fields.priority,
                template.priority if template else None,
                priority_of(kind),
            ),
            related_id=fields.related_id,
            expires_at=fields.expires_at,
            link=fields.link,
            icon=_first(fields.icon, template.icon if template else None),
            color=_first(fields.color, template.color if template else None),
            actions=_first(fields.actions, template_actions),
            metadata=fields.metadata,
            send_push=fields.send_push,
        )

    def _build(
        self,
        content: _Content,
        user_id: str,
        link: str,
        now: datetime,
    ) -> Notification:
        return Notification(
            id=self._store.new_id(),
            user_id=user_id,
            title=content.title,
            message=content.message,
            kind=content.kind,
            category=content.category,
            priority=content.priority,
            created_at=now,
            expires_at=content.expires_at or expiry_for(content.priority, now),
            link=link,
            read=False,
            related_id=content.related_id,
            icon=content.icon,
            color=content.color,
            actions=list(content.actions) if content.actions else None,
            metadata=dict(content.metadata) if content.metadata else None,
            send_push=content.send_push,
        )

    async def _write_in_batches(
        self,
        school_id: str,
        notifications: Sequence[Notification],
        write: Callable[[WriteBatch, Notification], None],
    ) -> None:
        """Apply a write to each notification, committing full batches."""
        size = self.batch_size
        for start in range(0, len(notifications), size):
            batch = self._store.batch(school_id)
            for notification in notifications[start:start + size]:
                write(batch, notification)
            await batch.commit()


# Singleton instance management
_service_instance: NotificationService | None = None


def get_notification_service(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> NotificationService:
    """Get or create the notification service singleton.

    Wires the SQLAlchemy store and identity directory over the notification
    database. The database must have been initialized with
    init_notification_database() unless a session factory is given.

    Args:
        session_factory: Session factory to use instead of the global one.

    Returns:
        NotificationService instance.
    """
    global _service_instance
    if _service_instance is None:
        from src.infrastructure.database.connection import get_session_factory
        from src.infrastructure.notifications.store.sqlalchemy import (
            SqlAlchemyIdentityDirectory,
            SqlAlchemyNotificationStore,
        )

        settings = get_settings().notifications
        factory = session_factory or get_session_factory()
        _service_instance = NotificationService(
            store=SqlAlchemyNotificationStore(factory, max_batch_size=settings.batch_size),
            directory=SqlAlchemyIdentityDirectory(factory),
            settings=settings,
        )
    return _service_instance


def reset_notification_service() -> None:
    """Drop the service singleton, e.g. after the database is re-initialized."""
    global _service_instance
    _service_instance = None
