# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Category and priority inference for notification kinds.

Used when the caller supplies neither an explicit value nor template
parameters. Both lookups are total: every kind yields a category and a
priority.
"""

from src.infrastructure.notifications.types import (
    NotificationCategory,
    NotificationKind,
    NotificationPriority,
)

K = NotificationKind

CATEGORY_BY_KIND: dict[NotificationKind, NotificationCategory] = {
    # Assignments
    K.NEW_ASSIGNMENT: NotificationCategory.ASSIGNMENTS,
    K.ASSIGNMENT_DUE_SOON: NotificationCategory.ASSIGNMENTS,
    K.ASSIGNMENT_GRADED: NotificationCategory.ASSIGNMENTS,
    K.ASSIGNMENT_FEEDBACK: NotificationCategory.ASSIGNMENTS,
    K.ASSIGNMENT_UPDATED: NotificationCategory.ASSIGNMENTS,
    K.ASSIGNMENT_REMINDER: NotificationCategory.ASSIGNMENTS,
    # Quizzes
    K.QUIZ_PUBLISHED: NotificationCategory.QUIZZES,
    K.QUIZ_UPDATED: NotificationCategory.QUIZZES,
    K.QUIZ_GRADED: NotificationCategory.QUIZZES,
    K.QUIZ_REMINDER: NotificationCategory.QUIZZES,
    K.QUIZ_DUE_SOON: NotificationCategory.QUIZZES,
    # Grades
    K.NEW_GRADE: NotificationCategory.GRADES,
    K.EDITED_GRADE: NotificationCategory.GRADES,
    K.DELETED_GRADE: NotificationCategory.GRADES,
    K.GRADE_COMMENT: NotificationCategory.GRADES,
    # Feedback
    K.STUDENT_REVIEW: NotificationCategory.FEEDBACK,
    K.TEACHER_FEEDBACK: NotificationCategory.FEEDBACK,
    K.PARENT_COMMENT: NotificationCategory.FEEDBACK,
    # Attendance
    K.ATTENDANCE_ABSENT: NotificationCategory.ATTENDANCE,
    K.ATTENDANCE_LATE: NotificationCategory.ATTENDANCE,
    K.ATTENDANCE_EXCUSED: NotificationCategory.ATTENDANCE,
    K.ATTENDANCE_UPDATED: NotificationCategory.ATTENDANCE,
    # System
    # Outside the assignment family despite its template category
    K.LATE_SUBMISSION: NotificationCategory.SYSTEM,
    K.SYSTEM_ANNOUNCEMENT: NotificationCategory.SYSTEM,
    K.SYSTEM_MAINTENANCE: NotificationCategory.SYSTEM,
    K.PASSWORD_CHANGED: NotificationCategory.SYSTEM,
    K.ACCOUNT_UPDATED: NotificationCategory.SYSTEM,
    # Messages
    K.NEW_MESSAGE: NotificationCategory.MESSAGES,
    K.MESSAGE_REPLY: NotificationCategory.MESSAGES,
}

HIGH_PRIORITY_KINDS = frozenset(
    {
        K.ASSIGNMENT_DUE_SOON,
        K.QUIZ_DUE_SOON,
        K.ATTENDANCE_ABSENT,
        K.STUDENT_REVIEW,
    }
)

LOW_PRIORITY_KINDS = frozenset(
    {
        K.GRADE_COMMENT,
        K.ATTENDANCE_EXCUSED,
        K.ACCOUNT_UPDATED,
    }
)


def category_of(kind: NotificationKind) -> NotificationCategory:
    """Return the category a notification kind belongs to."""
    return CATEGORY_BY_KIND.get(kind, NotificationCategory.SYSTEM)


def priority_of(kind: NotificationKind) -> NotificationPriority:
    """Return the default priority of a notification kind."""
    if kind in HIGH_PRIORITY_KINDS:
        return NotificationPriority.HIGH
    if kind in LOW_PRIORITY_KINDS:
        return NotificationPriority.LOW
    return NotificationPriority.MEDIUM
