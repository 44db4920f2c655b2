# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification persistence and identity ports.

The SQLAlchemy adapters live in store.sqlalchemy and are imported from
there so that the ports stay free of database dependencies.
"""

from src.infrastructure.notifications.store.base import (
    BatchLimitExceededError,
    IdentityDirectory,
    NotificationNotFoundError,
    NotificationQuery,
    NotificationStore,
    StoreError,
    WriteBatch,
)

__all__ = [
    "BatchLimitExceededError",
    "IdentityDirectory",
    "NotificationNotFoundError",
    "NotificationQuery",
    "NotificationStore",
    "StoreError",
    "WriteBatch",
]
