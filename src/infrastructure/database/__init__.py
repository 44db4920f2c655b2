# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the notification PostgreSQL database."""

from src.infrastructure.database.connection import (
    DatabaseError,
    close_notification_database,
    get_session_factory,
    init_notification_database,
)

__all__ = [
    "DatabaseError",
    "close_notification_database",
    "get_session_factory",
    "init_notification_database",
]
