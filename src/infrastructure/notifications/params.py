# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Template parameter payloads, one model per notification kind.

Business modules may pass either the model for the kind or a plain
mapping; mappings are validated into the model, accepting the camelCase
keys used by the web client as well as snake_case.

Example:
    >>> from src.infrastructure.notifications.params import AttendanceParams
    >>> AttendanceParams.model_validate(
    ...     {"subjectName": "Math", "date": "2024-05-01", "periodNumber": 3}
    ... ).period_number
    3
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.infrastructure.notifications.types import NotificationKind, NotificationPriority


class TemplateParams(BaseModel):
    """Base class for template payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class EmptyParams(TemplateParams):
    """Kinds whose text needs no parameters."""


class CourseworkParams(TemplateParams):
    """An assignment or quiz in a subject."""

    title: str
    subject_name: str


class DueSoonParams(CourseworkParams):
    """Coursework whose deadline is approaching."""

    days_left: int = Field(ge=0)


class GradedCourseworkParams(CourseworkParams):
    """Coursework that received a grade, which may be withheld."""

    grade: float | str | None = None


class GradeParams(TemplateParams):
    """A grade entry in the grade book."""

    title: str
    subject_name: str
    grade: float | str


class GradeCommentParams(TemplateParams):
    """A comment attached to a grade."""

    title: str
    subject_name: str


class StudentReviewParams(TemplateParams):
    """A positive or negative remark about a student."""

    title: str
    review_type: Literal["positive", "negative"] = Field(alias="type")
    is_for_student: bool = False
    student_name: str | None = None


class TeacherFeedbackParams(TemplateParams):
    teacher_name: str
    summary: str


class ParentCommentParams(TemplateParams):
    student_name: str
    summary: str


class AttendanceParams(TemplateParams):
    """An attendance mark for one lesson period."""

    subject_name: str
    date: str
    period_number: int
    is_for_student: bool = False
    student_name: str | None = None


class AttendanceUpdatedParams(TemplateParams):
    subject_name: str
    date: str


class SystemAnnouncementParams(TemplateParams):
    """Free-text announcement, optionally pinning its priority."""

    message: str
    priority: NotificationPriority | None = None


class MaintenanceParams(TemplateParams):
    date: str
    start_time: str
    end_time: str


class MessageParams(TemplateParams):
    sender_name: str


PARAMS_MODEL_BY_KIND: dict[NotificationKind, type[TemplateParams]] = {
    NotificationKind.NEW_ASSIGNMENT: CourseworkParams,
    NotificationKind.ASSIGNMENT_DUE_SOON: DueSoonParams,
    NotificationKind.ASSIGNMENT_GRADED: GradedCourseworkParams,
    NotificationKind.ASSIGNMENT_FEEDBACK: CourseworkParams,
    NotificationKind.LATE_SUBMISSION: CourseworkParams,
    NotificationKind.ASSIGNMENT_UPDATED: CourseworkParams,
    NotificationKind.ASSIGNMENT_REMINDER: CourseworkParams,
    NotificationKind.QUIZ_PUBLISHED: CourseworkParams,
    NotificationKind.QUIZ_UPDATED: CourseworkParams,
    NotificationKind.QUIZ_GRADED: GradedCourseworkParams,
    NotificationKind.QUIZ_REMINDER: CourseworkParams,
    NotificationKind.QUIZ_DUE_SOON: DueSoonParams,
    NotificationKind.NEW_GRADE: GradeParams,
    NotificationKind.EDITED_GRADE: GradeParams,
    NotificationKind.DELETED_GRADE: GradeParams,
    NotificationKind.GRADE_COMMENT: GradeCommentParams,
    NotificationKind.STUDENT_REVIEW: StudentReviewParams,
    NotificationKind.TEACHER_FEEDBACK: TeacherFeedbackParams,
    NotificationKind.PARENT_COMMENT: ParentCommentParams,
    NotificationKind.ATTENDANCE_ABSENT: AttendanceParams,
    NotificationKind.ATTENDANCE_LATE: AttendanceParams,
    NotificationKind.ATTENDANCE_EXCUSED: AttendanceParams,
    NotificationKind.ATTENDANCE_UPDATED: AttendanceUpdatedParams,
    NotificationKind.SYSTEM_ANNOUNCEMENT: SystemAnnouncementParams,
    NotificationKind.SYSTEM_MAINTENANCE: MaintenanceParams,
    NotificationKind.PASSWORD_CHANGED: EmptyParams,
    NotificationKind.ACCOUNT_UPDATED: EmptyParams,
    NotificationKind.NEW_MESSAGE: MessageParams,
    NotificationKind.MESSAGE_REPLY: MessageParams,
}
