# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the notification pipeline.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    MAX_WRITE_BATCH_SIZE,
    NotificationDatabaseSettings,
    NotificationSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "NotificationDatabaseSettings",
    "NotificationSettings",
    "MAX_WRITE_BATCH_SIZE",
]
