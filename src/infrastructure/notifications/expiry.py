# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification expiry policy.

Urgent notifications expire after one day, low priority ones after two
weeks. Used only when the caller does not pin an expiry.
"""

from datetime import datetime, timedelta

from src.infrastructure.notifications.types import NotificationPriority
from src.utils.datetime import utc_now

EXPIRY_DAYS: dict[NotificationPriority, int] = {
    NotificationPriority.URGENT: 1,
    NotificationPriority.HIGH: 3,
    NotificationPriority.MEDIUM: 7,
    NotificationPriority.LOW: 14,
}


def expiry_for(priority: NotificationPriority, now: datetime | None = None) -> datetime:
    """Compute when a notification of the given priority expires.

    Args:
        priority: Notification priority.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Expiry timestamp.
    """
    if now is None:
        now = utc_now()
    return now + timedelta(days=EXPIRY_DAYS[priority])
