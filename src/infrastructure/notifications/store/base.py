# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence and identity ports for the notification pipeline.

The pipeline talks to its collaborators only through these abstract
classes, so production wiring (SQLAlchemy) and tests (in-memory fakes)
are interchangeable.

Every notification belongs to one recipient within one school, and all
reads and writes are scoped by that (school_id, user_id) pair.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from src.infrastructure.notifications.types import (
    Notification,
    NotificationCategory,
    NotificationError,
    UserNotificationPreferences,
)


class StoreError(NotificationError):
    """Raised when the notification store fails to read or write.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class BatchLimitExceededError(StoreError):
    """Raised when a write batch grows past the store's ceiling."""

    pass


class NotificationNotFoundError(StoreError):
    """Raised when a notification does not exist for the recipient."""

    pass


@dataclass(frozen=True)
class NotificationQuery:
    """Filters for listing a recipient's notifications.

    Results are always ordered by created_at, newest first.

    Attributes:
        read: Only notifications with this read flag, if set.
        category: Only notifications of this category, if set.
        start_after: Only notifications created strictly before this time.
        limit: Maximum number of results; None returns all.
    """

    read: bool | None = None
    category: NotificationCategory | None = None
    start_after: datetime | None = None
    limit: int | None = None


class WriteBatch(ABC):
    """A group of writes committed atomically.

    A batch accepts at most `max_size` writes; adding more raises
    BatchLimitExceededError before anything is committed.
    """

    def __init__(self, school_id: str, max_size: int) -> None:
        self.school_id = school_id
        self.max_size = max_size
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _reserve(self) -> None:
        if self._size >= self.max_size:
            raise BatchLimitExceededError(
                f"Write batch is limited to {self.max_size} operations"
            )
        self._size += 1

    def set(self, notification: Notification) -> None:
        """Queue the creation of a notification."""
        self._reserve()
        self._set(notification)

    def mark_read(self, user_id: str, notification_id: str) -> None:
        """Queue flipping a notification's read flag to True."""
        self._reserve()
        self._mark_read(user_id, notification_id)

    def delete(self, user_id: str, notification_id: str) -> None:
        """Queue the deletion of a notification."""
        self._reserve()
        self._delete(user_id, notification_id)

    @abstractmethod
    def _set(self, notification: Notification) -> None: ...

    @abstractmethod
    def _mark_read(self, user_id: str, notification_id: str) -> None: ...

    @abstractmethod
    def _delete(self, user_id: str, notification_id: str) -> None: ...

    @abstractmethod
    async def commit(self) -> None:
        """Apply all queued writes atomically.

        Raises:
            StoreError: If the commit fails; nothing is applied.
        """
        ...


class NotificationStore(ABC):
    """Document-style storage for notifications.

    Attributes:
        max_batch_size: Largest number of writes one batch may hold.
    """

    max_batch_size: int

    @abstractmethod
    def new_id(self) -> str:
        """Generate a fresh notification ID."""
        ...

    @abstractmethod
    async def create(self, school_id: str, notification: Notification) -> str:
        """Persist a notification whose id is already assigned.

        Returns:
            The notification ID.
        """
        ...

    @abstractmethod
    async def get(
        self, school_id: str, user_id: str, notification_id: str
    ) -> Notification | None:
        """Fetch one notification, or None if it does not exist."""
        ...

    @abstractmethod
    async def query(
        self, school_id: str, user_id: str, query: NotificationQuery
    ) -> list[Notification]:
        """List a recipient's notifications matching the query."""
        ...

    @abstractmethod
    async def count(
        self,
        school_id: str,
        user_id: str,
        read: bool | None = None,
        category: NotificationCategory | None = None,
    ) -> int:
        """Count notifications server-side without fetching them."""
        ...

    @abstractmethod
    async def set_read(
        self, school_id: str, user_id: str, notification_id: str
    ) -> None:
        """Mark one notification as read.

        Raises:
            NotificationNotFoundError: If it does not exist.
        """
        ...

    @abstractmethod
    async def delete(
        self, school_id: str, user_id: str, notification_id: str
    ) -> None:
        """Delete one notification. Deleting a missing one is a no-op."""
        ...

    @abstractmethod
    def batch(self, school_id: str) -> WriteBatch:
        """Start a new atomic write batch."""
        ...


class IdentityDirectory(ABC):
    """Read access to user profiles owned by the identity service."""

    @abstractmethod
    async def get_user_role(self, school_id: str, user_id: str) -> str | None:
        """Return the user's role (student, teacher, parent, admin) or None."""
        ...

    @abstractmethod
    async def get_notification_preferences(
        self, school_id: str, user_id: str
    ) -> UserNotificationPreferences | None:
        """Return the user's delivery preferences, or None if never saved."""
        ...
