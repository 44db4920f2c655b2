# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared types for the notification pipeline.

Defines the closed set of notification kinds, the categories and
priorities derived from them, the persisted Notification record and the
recipient's delivery preferences.
"""

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class NotificationError(Exception):
    """Base exception for notification pipeline errors."""

    pass


class UnknownNotificationKindError(NotificationError, ValueError):
    """Raised when a kind string is not one of the known kinds."""

    pass


class NotificationKind(str, Enum):
    """Symbolic type of the event a notification reports."""

    # Assignments
    NEW_ASSIGNMENT = "new-assignment"
    ASSIGNMENT_DUE_SOON = "assignment-due-soon"
    ASSIGNMENT_GRADED = "assignment-graded"
    ASSIGNMENT_FEEDBACK = "assignment-feedback"
    LATE_SUBMISSION = "late-submission"
    ASSIGNMENT_UPDATED = "assignment-updated"
    ASSIGNMENT_REMINDER = "assignment-reminder"

    # Quizzes
    QUIZ_PUBLISHED = "quiz-published"
    QUIZ_UPDATED = "quiz-updated"
    QUIZ_GRADED = "quiz-graded"
    QUIZ_REMINDER = "quiz-reminder"
    QUIZ_DUE_SOON = "quiz-due-soon"

    # Grades
    NEW_GRADE = "new-grade"
    EDITED_GRADE = "edited-grade"
    DELETED_GRADE = "deleted-grade"
    GRADE_COMMENT = "grade-comment"

    # Feedback and reviews
    STUDENT_REVIEW = "student-review"
    TEACHER_FEEDBACK = "teacher-feedback"
    PARENT_COMMENT = "parent-comment"

    # Attendance
    ATTENDANCE_ABSENT = "attendance-absent"
    ATTENDANCE_LATE = "attendance-late"
    ATTENDANCE_EXCUSED = "attendance-excused"
    ATTENDANCE_UPDATED = "attendance-updated"

    # System
    SYSTEM_ANNOUNCEMENT = "system-announcement"
    SYSTEM_MAINTENANCE = "system-maintenance"
    PASSWORD_CHANGED = "password-changed"
    ACCOUNT_UPDATED = "account-updated"

    # Messages
    NEW_MESSAGE = "new-message"
    MESSAGE_REPLY = "message-reply"

    @classmethod
    def parse(cls, value: "NotificationKind | str") -> "NotificationKind":
        """Coerce a kind or its string value into a NotificationKind.

        Raises:
            UnknownNotificationKindError: If the value is not a known kind.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownNotificationKindError(f"Unknown notification kind: {value!r}") from e


class NotificationCategory(str, Enum):
    """Coarse grouping used for preference toggles and routing."""

    ASSIGNMENTS = "assignments"
    QUIZZES = "quizzes"
    GRADES = "grades"
    ATTENDANCE = "attendance"
    FEEDBACK = "feedback"
    SYSTEM = "system"
    MESSAGES = "messages"


class NotificationPriority(str, Enum):
    """Urgency tier, ordered low < medium < high < urgent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Position of this priority in the urgency order."""
        return _PRIORITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, NotificationPriority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, NotificationPriority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, NotificationPriority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, NotificationPriority):
            return NotImplemented
        return self.rank >= other.rank


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.MEDIUM: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


@dataclass(frozen=True)
class NotificationAction:
    """A button shown with a notification.

    Attributes:
        label: Button label.
        url: URL to navigate to when clicked.
        action: Action token for a custom client handler.
        icon: Icon for the button.
    """

    label: str
    url: str | None = None
    action: str | None = None
    icon: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON storage."""
        return {
            "label": self.label,
            "url": self.url,
            "action": self.action,
            "icon": self.icon,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationAction":
        """Build an action from its stored dictionary form."""
        return cls(
            label=data["label"],
            url=data.get("url"),
            action=data.get("action"),
            icon=data.get("icon"),
        )


@dataclass(frozen=True)
class NotificationTemplate:
    """Rendered content for a notification kind.

    Produced per invocation by the template catalog and used as the seed
    of a Notification; never stored on its own.
    """

    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    icon: str | None = None
    color: str | None = None
    actions: tuple[NotificationAction, ...] | None = None


@dataclass
class NotificationFields:
    """Fields supplied explicitly by the caller.

    Every field is optional. A field that is set always wins over the
    value rendered from the kind's template.
    """

    title: str | None = None
    message: str | None = None
    category: NotificationCategory | None = None
    priority: NotificationPriority | None = None
    related_id: str | None = None
    expires_at: datetime | None = None
    link: str | None = None
    icon: str | None = None
    color: str | None = None
    actions: list[NotificationAction] | None = None
    metadata: dict[str, Any] | None = None
    send_push: bool | None = None


@dataclass
class Notification:
    """A notification stored for one recipient.

    Immutable after creation except for the read flag.

    Attributes:
        id: Store-assigned identifier.
        user_id: Recipient user ID.
        title: Notification title.
        message: Notification message body.
        kind: Kind of event reported.
        category: Category (always populated).
        priority: Priority (always populated).
        created_at: Creation time.
        expires_at: Expiry time, never before created_at.
        link: Client route to open.
        read: Whether the recipient has read it.
        related_id: Related entity (assignment, quiz, message...).
        icon: Icon to display.
        color: Color theme.
        actions: Action buttons.
        metadata: Opaque caller data.
        send_push: Whether a push should accompany the record.
    """

    id: str
    user_id: str
    title: str
    message: str
    kind: NotificationKind
    category: NotificationCategory
    priority: NotificationPriority
    created_at: datetime
    expires_at: datetime
    link: str
    read: bool = False
    related_id: str | None = None
    icon: str | None = None
    color: str | None = None
    actions: list[NotificationAction] | None = None
    metadata: dict[str, Any] | None = None
    send_push: bool | None = None


@dataclass
class NotificationPage:
    """One page of a recipient's notifications, newest first.

    Attributes:
        items: Notifications on this page.
        next_cursor: created_at of the last item when more may follow.
    """

    items: list[Notification] = field(default_factory=list)
    next_cursor: datetime | None = None


@dataclass
class BulkDeliveryResult:
    """Outcome of a fan-out to many recipients.

    Attributes:
        recipients_count: Number of unique recipients.
        batch_sizes: Size of each committed write batch, in order.
        notification_ids: IDs of the created notifications.
    """

    recipients_count: int = 0
    batch_sizes: list[int] = field(default_factory=list)
    notification_ids: list[str] = field(default_factory=list)


class CategoryPreference(BaseModel):
    """Opt-in flag for one category."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True


class UserNotificationPreferences(BaseModel):
    """A recipient's delivery preferences.

    Quiet hours are only applied when start, end and at least one day are
    set. Days use 0 for Sunday through 6 for Saturday. Documents written
    with the older do-not-disturb keys validate as well.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category_preferences: dict[NotificationCategory, CategoryPreference] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("categoryPreferences", "perCategory", "category_preferences"),
    )
    quiet_hours_start: time | None = Field(
        default=None,
        validation_alias=AliasChoices("quietHoursStart", "doNotDisturbStart", "quiet_hours_start"),
    )
    quiet_hours_end: time | None = Field(
        default=None,
        validation_alias=AliasChoices("quietHoursEnd", "doNotDisturbEnd", "quiet_hours_end"),
    )
    quiet_hours_days: set[int] = Field(
        default_factory=set,
        validation_alias=AliasChoices("quietHoursDays", "doNotDisturbDays", "quiet_hours_days"),
    )
    timezone: str | None = None

    @field_validator("category_preferences", mode="before")
    @classmethod
    def drop_unknown_categories(cls, value: Any) -> Any:
        """Ignore preference entries for categories that no longer exist."""
        if not isinstance(value, dict):
            return value
        known = {category.value for category in NotificationCategory}
        return {
            key: pref
            for key, pref in value.items()
            if (key.value if isinstance(key, NotificationCategory) else key) in known
        }

    @field_validator("quiet_hours_days")
    @classmethod
    def validate_days(cls, value: set[int]) -> set[int]:
        """Ensure every day number is between 0 (Sunday) and 6 (Saturday)."""
        invalid = sorted(day for day in value if not 0 <= day <= 6)
        if invalid:
            raise ValueError(f"Invalid weekday numbers: {invalid}")
        return value

    def is_category_enabled(self, category: NotificationCategory) -> bool:
        """Return False only when the category is explicitly disabled."""
        preference = self.category_preferences.get(category)
        return preference is None or preference.enabled

    @property
    def has_quiet_hours(self) -> bool:
        """Whether a quiet-hours window is fully configured."""
        return (
            self.quiet_hours_start is not None
            and self.quiet_hours_end is not None
            and bool(self.quiet_hours_days)
        )
