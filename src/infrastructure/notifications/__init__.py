# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification pipeline for the school management platform.

This package turns domain events (a new assignment, a grade, an absence,
a message) into user-facing notifications:
- Templates render localized titles and messages from typed parameters
- The classifier assigns a category and priority to every kind
- The preference gate applies per-category opt-outs and quiet hours
- Links route the recipient to the right page for their role
- Bulk delivery fans a notification out in atomic batches

Key Components:
- NotificationService: Delivery, listing and lifecycle operations
- NotificationStore / IdentityDirectory: Persistence and identity ports
- NotificationKind, NotificationCategory, NotificationPriority: Vocabulary

Usage:
    from src.infrastructure.notifications import (
        NotificationKind,
        get_notification_service,
    )

    service = get_notification_service()

    notification_id = await service.create_notification(
        school_id="school-1",
        user_id="student-7",
        kind=NotificationKind.ATTENDANCE_ABSENT,
        params={"subjectName": "Math", "date": "12.03.2025", "periodNumber": 2},
    )

Configuration (environment variables):
- NOTIFICATIONS_BATCH_SIZE: Writes per atomic batch (default: 500)
- NOTIFICATIONS_DEFAULT_LANGUAGE: Template language (default: bg)
- NOTIFICATIONS_QUIET_HOURS_TIMEZONE: Institution timezone (default: Europe/Sofia)
- NOTIFICATIONS_PAGE_SIZE: Default listing page size (default: 50)
"""

from src.infrastructure.notifications.classifier import category_of, priority_of
from src.infrastructure.notifications.expiry import expiry_for
from src.infrastructure.notifications.links import LinkResolver, build_link
from src.infrastructure.notifications.preferences import PreferenceGate
from src.infrastructure.notifications.service import (
    NotificationContentError,
    NotificationService,
    get_notification_service,
    reset_notification_service,
)
from src.infrastructure.notifications.store import (
    BatchLimitExceededError,
    IdentityDirectory,
    NotificationNotFoundError,
    NotificationQuery,
    NotificationStore,
    StoreError,
    WriteBatch,
)
from src.infrastructure.notifications.templates import TemplateParamsError, render
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
    NotificationTemplate,
    UnknownNotificationKindError,
    UserNotificationPreferences,
)

__all__ = [
    # Service
    "NotificationService",
    "get_notification_service",
    "reset_notification_service",
    # Pipeline stages
    "LinkResolver",
    "PreferenceGate",
    "build_link",
    "category_of",
    "expiry_for",
    "priority_of",
    "render",
    # Ports
    "IdentityDirectory",
    "NotificationQuery",
    "NotificationStore",
    "WriteBatch",
    # Types
    "BulkDeliveryResult",
    "Notification",
    "NotificationAction",
    "NotificationCategory",
    "NotificationFields",
    "NotificationKind",
    "NotificationPage",
    "NotificationPriority",
    "NotificationTemplate",
    "UserNotificationPreferences",
    # Errors
    "BatchLimitExceededError",
    "NotificationContentError",
    "NotificationError",
    "NotificationNotFoundError",
    "StoreError",
    "TemplateParamsError",
    "UnknownNotificationKindError",
]
