# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification and notification settings tables.

Notifications are keyed by school and recipient, so every query filters on
(school_id, user_id) and the composite index serves the notification center
listing ordered by created_at.
"""

from datetime import datetime, time
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class NotificationRecord(Base):
    """A notification delivered to one user of a school.

    created_at is set by the pipeline, not the database, so that expiry
    and pagination cursors agree with the stored value.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "ix_notifications_recipient_created",
            "school_id",
            "user_id",
            "created_at",
        ),
        Index("ix_notifications_recipient_read", "school_id", "user_id", "read"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    school_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str] = mapped_column(String(500), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    related_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actions: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    extra_data: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )
    send_push: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<NotificationRecord(id={self.id}, user={self.user_id}, kind={self.kind})>"


class NotificationSettingsRecord(Base, TimestampMixin):
    """Per-user delivery preferences, written by the user's settings page."""

    __tablename__ = "notification_settings"

    school_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    category_preferences: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    quiet_hours_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    quiet_hours_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    quiet_hours_days: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<NotificationSettingsRecord(school={self.school_id}, user={self.user_id})>"
