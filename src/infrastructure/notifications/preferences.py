# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery preference gate.

Decides whether a notification may be delivered to a recipient based on
their per-category opt-outs and quiet hours. During quiet hours only
urgent notifications get through.

The gate fails open: if the recipient's preferences cannot be read, the
notification is delivered.
"""

import logging
from collections.abc import Callable
from datetime import datetime, time
from zoneinfo import ZoneInfo

from src.infrastructure.notifications.store.base import IdentityDirectory
from src.infrastructure.notifications.types import (
    NotificationCategory,
    NotificationPriority,
    UserNotificationPreferences,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def in_quiet_window(start: time, end: time, current: time) -> bool:
    """Check whether a clock time falls inside a quiet-hours window.

    Both ends are inclusive. A window whose end is before its start
    crosses midnight, e.g. 22:00-06:00.

    Args:
        start: Window start.
        end: Window end.
        current: Clock time to test.

    Returns:
        True if current is inside the window.
    """
    if end < start:
        return current >= start or current <= end
    return start <= current <= end


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday number with 0 for Sunday through 6 for Saturday."""
    return moment.isoweekday() % 7


class PreferenceGate:
    """Applies a recipient's notification preferences.

    Attributes:
        default_timezone: Timezone for quiet hours when the recipient has none.
    """

    def __init__(
        self,
        directory: IdentityDirectory,
        default_timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the gate.

        Args:
            directory: Source of recipient preferences.
            default_timezone: Institution timezone name.
            clock: Returns the current aware datetime.
        """
        self._directory = directory
        self._clock = clock
        self.default_timezone = default_timezone

    async def should_deliver(
        self,
        school_id: str,
        user_id: str,
        category: NotificationCategory,
        priority: NotificationPriority,
    ) -> bool:
        """Decide whether a notification should reach the recipient.

        Args:
            school_id: School the recipient belongs to.
            user_id: Recipient user ID.
            category: Notification category.
            priority: Notification priority.

        Returns:
            False if the category is disabled, or if the recipient is in
            quiet hours and the notification is not urgent. True otherwise,
            including when preferences cannot be read.
        """
        try:
            preferences = await self._directory.get_notification_preferences(
                school_id, user_id
            )
        except Exception as e:
            logger.error(
                "Error reading notification preferences for user %s, delivering anyway: %s",
                user_id,
                str(e),
                exc_info=True,
            )
            return True

        if preferences is None:
            return True

        if not preferences.is_category_enabled(category):
            logger.debug("Category %s disabled by user %s", category.value, user_id)
            return False

        if priority != NotificationPriority.URGENT and self.is_quiet_time(preferences):
            logger.debug("User %s is in quiet hours", user_id)
            return False

        return True

    def is_quiet_time(
        self,
        preferences: UserNotificationPreferences,
        moment: datetime | None = None,
    ) -> bool:
        """Check whether a moment falls in the recipient's quiet hours.

        Args:
            preferences: Recipient preferences.
            moment: Aware datetime to test, defaults to now.

        Returns:
            True if quiet hours apply at that moment.
        """
        if not preferences.has_quiet_hours:
            return False

        try:
            tz = ZoneInfo(preferences.timezone or self.default_timezone)
        except Exception as e:
            logger.warning(
                "Invalid timezone %r in preferences, using %s: %s",
                preferences.timezone,
                self.default_timezone,
                str(e),
            )
            tz = ZoneInfo(self.default_timezone)

        local = (moment or self._clock()).astimezone(tz)

        if sunday_based_weekday(local) not in preferences.quiet_hours_days:
            return False

        return in_quiet_window(
            preferences.quiet_hours_start,
            preferences.quiet_hours_end,
            local.time(),
        )
