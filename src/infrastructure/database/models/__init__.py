# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the notification database."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.notification import (
    NotificationRecord,
    NotificationSettingsRecord,
)
from src.infrastructure.database.models.user import SchoolUser

__all__ = [
    "Base",
    "NotificationRecord",
    "NotificationSettingsRecord",
    "SchoolUser",
    "TimestampMixin",
]
