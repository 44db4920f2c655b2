# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role-aware deep links for notifications.

Each role has its own area of the web client, so the same kind of
notification routes differently for a student, a teacher or a parent:

    /student/assignments/<id>     assignment detail for a student
    /teacher/messages             message list for a teacher
    /parent/dashboard/<school>    system notice for a parent

If the recipient's role cannot be determined the path is left without a
role prefix.
"""

import logging

from src.infrastructure.notifications.classifier import category_of
from src.infrastructure.notifications.store.base import IdentityDirectory
from src.infrastructure.notifications.types import NotificationCategory, NotificationKind

logger = logging.getLogger(__name__)

PARENT_ROLE = "parent"

CATEGORY_SEGMENTS: dict[NotificationCategory, str] = {
    NotificationCategory.ASSIGNMENTS: "assignments",
    NotificationCategory.QUIZZES: "quizzes",
    NotificationCategory.GRADES: "grades",
    NotificationCategory.ATTENDANCE: "attendance",
    NotificationCategory.FEEDBACK: "feedback",
    NotificationCategory.SYSTEM: "dashboard",
    NotificationCategory.MESSAGES: "messages",
}

# Kinds whose related entity has its own detail page
DETAIL_SEGMENTS: dict[NotificationKind, str] = {
    NotificationKind.NEW_ASSIGNMENT: "assignments",
    NotificationKind.ASSIGNMENT_DUE_SOON: "assignments",
    NotificationKind.ASSIGNMENT_GRADED: "assignments",
    NotificationKind.ASSIGNMENT_FEEDBACK: "assignments",
    NotificationKind.LATE_SUBMISSION: "assignments",
    NotificationKind.ASSIGNMENT_UPDATED: "assignments",
    NotificationKind.ASSIGNMENT_REMINDER: "assignments",
    NotificationKind.QUIZ_PUBLISHED: "quizzes",
    NotificationKind.QUIZ_UPDATED: "quizzes",
    NotificationKind.QUIZ_GRADED: "quizzes",
    NotificationKind.QUIZ_REMINDER: "quizzes",
    NotificationKind.QUIZ_DUE_SOON: "quizzes",
    NotificationKind.NEW_MESSAGE: "messages",
    NotificationKind.MESSAGE_REPLY: "messages",
}


def build_link(
    kind: NotificationKind,
    related_id: str | None,
    role: str | None,
    school_id: str | None = None,
) -> str:
    """Build the client route for a notification.

    Args:
        kind: Notification kind.
        related_id: Related entity ID, if any.
        role: Recipient role, or None when unknown.
        school_id: School ID, used by the parent dashboard route.

    Returns:
        Path the client should navigate to.
    """
    prefix = f"/{role}" if role else ""
    category = category_of(kind)

    if related_id and kind in DETAIL_SEGMENTS:
        return f"{prefix}/{DETAIL_SEGMENTS[kind]}/{related_id}"

    if role == PARENT_ROLE and category == NotificationCategory.SYSTEM and school_id:
        return f"/{PARENT_ROLE}/dashboard/{school_id}"

    return f"{prefix}/{CATEGORY_SEGMENTS[category]}"


class LinkResolver:
    """Resolves notification links using the recipient's role."""

    def __init__(self, directory: IdentityDirectory) -> None:
        """Initialize the resolver.

        Args:
            directory: Source of user roles.
        """
        self._directory = directory

    async def get_role(self, school_id: str, user_id: str) -> str | None:
        """Look up a user's role, returning None if the lookup fails."""
        try:
            return await self._directory.get_user_role(school_id, user_id)
        except Exception as e:
            logger.error(
                "Error fetching role of user %s for notification link: %s",
                user_id,
                str(e),
                exc_info=True,
            )
            return None

    async def resolve(
        self,
        school_id: str,
        user_id: str,
        kind: NotificationKind,
        related_id: str | None = None,
    ) -> str:
        """Build the link for a notification addressed to a user.

        Args:
            school_id: School ID.
            user_id: Recipient user ID.
            kind: Notification kind.
            related_id: Related entity ID, if any.

        Returns:
            Path the client should navigate to.
        """
        role = await self.get_role(school_id, user_id)
        return build_link(kind, related_id, role, school_id)
