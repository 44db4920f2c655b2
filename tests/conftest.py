# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Provides in-memory implementations of the notification store and identity
directory so that pipeline tests run without a database, plus a fixed clock
and pipeline settings.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

import pytest

from src.core.config.settings import NotificationSettings, clear_settings_cache
from src.infrastructure.notifications.service import NotificationService
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
    NotificationCategory,
    UserNotificationPreferences,
)

# Wednesday 12:00 in Sofia
FIXED_NOW = datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)


# =============================================================================
# In-memory Ports
# =============================================================================


class InMemoryWriteBatch(WriteBatch):
    """Queues writes and applies them to the store on commit."""

    def __init__(self, store: "InMemoryNotificationStore", school_id: str, max_size: int) -> None:
        super().__init__(school_id, max_size)
        self._store = store
        self._ops: list[tuple[str, Any]] = []

    def _set(self, notification: Notification) -> None:
        self._ops.append(("set", notification))

    def _mark_read(self, user_id: str, notification_id: str) -> None:
        self._ops.append(("read", (user_id, notification_id)))

    def _delete(self, user_id: str, notification_id: str) -> None:
        self._ops.append(("delete", (user_id, notification_id)))

    async def commit(self) -> None:
        self._store.commit_attempts += 1
        if self._store.fail_on_commit == self._store.commit_attempts:
            raise StoreError("Simulated commit failure")

        for op, payload in self._ops:
            if op == "set":
                self._store.save(self.school_id, payload)
            elif op == "read":
                key = (self.school_id, *payload)
                if key in self._store.notifications:
                    self._store.notifications[key].read = True
            else:
                self._store.notifications.pop((self.school_id, *payload), None)
        self._store.committed_batches.append(len(self))


class InMemoryNotificationStore(NotificationStore):
    """Dictionary-backed notification store.

    Attributes:
        notifications: Stored notifications keyed by (school, user, id).
        committed_batches: Sizes of the batches committed so far.
        fail_on_commit: 1-based batch commit attempt that should fail.
        fail_reads: Make query and count raise StoreError.
        fail_writes: Make create, set_read and delete raise StoreError.
    """

    def __init__(self, max_batch_size: int = 500) -> None:
        self.max_batch_size = max_batch_size
        self.notifications: dict[tuple[str, str, str], Notification] = {}
        self.committed_batches: list[int] = []
        self.commit_attempts = 0
        self.fail_on_commit: int | None = None
        self.fail_reads = False
        self.fail_writes = False
        self._next_id = 0

    def save(self, school_id: str, notification: Notification) -> None:
        key = (school_id, notification.user_id, notification.id)
        self.notifications[key] = replace(notification)

    def all(self) -> list[Notification]:
        return list(self.notifications.values())

    def new_id(self) -> str:
        self._next_id += 1
        return f"n{self._next_id:05d}"

    async def create(self, school_id: str, notification: Notification) -> str:
        if self.fail_writes:
            raise StoreError("Simulated write failure")
        self.save(school_id, notification)
        return notification.id

    async def get(
        self, school_id: str, user_id: str, notification_id: str
    ) -> Notification | None:
        return self.notifications.get((school_id, user_id, notification_id))

    async def query(
        self, school_id: str, user_id: str, query: NotificationQuery
    ) -> list[Notification]:
        if self.fail_reads:
            raise StoreError("Simulated read failure")
        items = [
            n
            for (school, user, _), n in self.notifications.items()
            if school == school_id
            and user == user_id
            and (query.read is None or n.read == query.read)
            and (query.category is None or n.category == query.category)
            and (query.start_after is None or n.created_at < query.start_after)
        ]
        items.sort(key=lambda n: n.created_at, reverse=True)
        if query.limit is not None:
            items = items[: query.limit]
        return items

    async def count(
        self,
        school_id: str,
        user_id: str,
        read: bool | None = None,
        category: NotificationCategory | None = None,
    ) -> int:
        items = await self.query(
            school_id, user_id, NotificationQuery(read=read, category=category)
        )
        return len(items)

    async def set_read(self, school_id: str, user_id: str, notification_id: str) -> None:
        if self.fail_writes:
            raise StoreError("Simulated write failure")
        notification = self.notifications.get((school_id, user_id, notification_id))
        if notification is None:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        notification.read = True

    async def delete(self, school_id: str, user_id: str, notification_id: str) -> None:
        if self.fail_writes:
            raise StoreError("Simulated write failure")
        self.notifications.pop((school_id, user_id, notification_id), None)

    def batch(self, school_id: str) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self, school_id, self.max_batch_size)


class FakeIdentityDirectory(IdentityDirectory):
    """Roles and preferences held in dictionaries keyed by user ID."""

    def __init__(self) -> None:
        self.roles: dict[str, str] = {}
        self.preferences: dict[str, UserNotificationPreferences] = {}
        self.fail_roles = False
        self.fail_preferences = False
        self.role_lookups: list[str] = []
        self.preference_lookups: list[str] = []

    async def get_user_role(self, school_id: str, user_id: str) -> str | None:
        self.role_lookups.append(user_id)
        if self.fail_roles:
            raise StoreError("Simulated role lookup failure")
        return self.roles.get(user_id)

    async def get_notification_preferences(
        self, school_id: str, user_id: str
    ) -> UserNotificationPreferences | None:
        self.preference_lookups.append(user_id)
        if self.fail_preferences:
            raise StoreError("Simulated preferences lookup failure")
        return self.preferences.get(user_id)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Make every test read settings from a clean environment."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fixed_now() -> datetime:
    """Current time as seen by the pipeline under test."""
    return FIXED_NOW


@pytest.fixture
def store() -> InMemoryNotificationStore:
    """Provide an empty in-memory notification store."""
    return InMemoryNotificationStore()


@pytest.fixture
def directory() -> FakeIdentityDirectory:
    """Provide a directory with a student, a teacher and a parent."""
    directory = FakeIdentityDirectory()
    directory.roles.update(
        {
            "student-1": "student",
            "teacher-1": "teacher",
            "parent-1": "parent",
        }
    )
    return directory


@pytest.fixture
def notification_settings() -> NotificationSettings:
    """Provide pipeline settings independent of the environment."""
    return NotificationSettings(
        batch_size=500,
        default_language="bg",
        quiet_hours_timezone="Europe/Sofia",
        page_size=50,
    )


@pytest.fixture
def service(
    store: InMemoryNotificationStore,
    directory: FakeIdentityDirectory,
    notification_settings: NotificationSettings,
    fixed_now: datetime,
) -> NotificationService:
    """Provide a notification service over the in-memory ports."""
    return NotificationService(
        store=store,
        directory=directory,
        settings=notification_settings,
        clock=lambda: fixed_now,
    )


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
