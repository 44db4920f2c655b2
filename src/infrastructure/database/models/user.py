# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only view of school user profiles.

The table is owned by the identity service; the notification pipeline only
reads a user's role from it.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class SchoolUser(Base, TimestampMixin):
    """A user registered in a school."""

    __tablename__ = "school_users"

    school_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<SchoolUser(id={self.id}, school={self.school_id}, role={self.role})>"
