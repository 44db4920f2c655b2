# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification template catalog.

Maps a notification kind and its parameter payload to the rendered
title, message and visual metadata. Rendering is pure: no I/O, and the
same input always yields the same template.

Templates are localized. Bulgarian is the platform language; English is
provided for international schools. Unknown language codes fall back to
Bulgarian.

Example:
    >>> from src.infrastructure.notifications.templates import render
    >>> template = render("new-message", {"senderName": "Ivan"}, language="en")
    >>> template.message
    'You received a new message from Ivan'
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from src.infrastructure.notifications.params import (
    PARAMS_MODEL_BY_KIND,
    AttendanceParams,
    AttendanceUpdatedParams,
    CourseworkParams,
    DueSoonParams,
    EmptyParams,
    GradeCommentParams,
    GradedCourseworkParams,
    GradeParams,
    MaintenanceParams,
    MessageParams,
    ParentCommentParams,
    StudentReviewParams,
    SystemAnnouncementParams,
    TeacherFeedbackParams,
    TemplateParams,
)
from src.infrastructure.notifications.types import (
    NotificationCategory,
    NotificationError,
    NotificationKind,
    NotificationPriority,
    NotificationTemplate,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "bg"

# Theme colors
INDIGO = "#4f46e5"
AMBER = "#f59e0b"
GREEN = "#10b981"
ORANGE = "#f97316"
RED = "#ef4444"
GRAY = "#4b5563"


class TemplateParamsError(NotificationError, ValueError):
    """Raised when parameters do not match the payload expected by a kind."""

    pass


# Phrasebooks keyed by language. Titles are keyed by kind value, message
# patterns by name; patterns use str.format placeholders.
PHRASES: dict[str, dict[str, str]] = {
    "bg": {
        # Titles
        "new-assignment": "Нова задача",
        "assignment-due-soon": "Наближаващ краен срок",
        "assignment-graded": "Оценена задача",
        "assignment-feedback": "Обратна връзка за задача",
        "late-submission": "Късно предаване",
        "assignment-updated": "Актуализирана задача",
        "assignment-reminder": "Напомняне за задача",
        "quiz-published": "Нов тест",
        "quiz-updated": "Актуализиран тест",
        "quiz-graded": "Оценен тест",
        "quiz-reminder": "Напомняне за тест",
        "quiz-due-soon": "Наближаващ краен срок за тест",
        "new-grade": "Нова оценка",
        "edited-grade": "Променена оценка",
        "deleted-grade": "Изтрита оценка",
        "grade-comment": "Коментар към оценка",
        "student-review.positive": "Положителна забележка",
        "student-review.negative": "Отрицателна забележка",
        "teacher-feedback": "Обратна връзка от учител",
        "parent-comment": "Коментар от родител",
        "attendance-absent": "Отсъствие",
        "attendance-late": "Закъснение",
        "attendance-excused": "Извинено отсъствие",
        "attendance-updated": "Актуализирано присъствие",
        "system-announcement": "Системно съобщение",
        "system-maintenance": "Планирана поддръжка",
        "password-changed": "Променена парола",
        "account-updated": "Актуализиран профил",
        "new-message": "Ново съобщение",
        "message-reply": "Отговор на съобщение",
        # Fragments
        "day.one": "ден",
        "day.many": "дни",
        "graded.with": " с {grade}",
        "subject.you": "Имате",
        "subject.child": "Детето ви {student_name} има",
        "review.positive": "положителна",
        "review.negative": "отрицателна",
        # Messages
        "msg.new-assignment": 'Имате нова задача "{title}" по {subject_name}',
        "msg.assignment-due-soon": 'Крайният срок за задача "{title}" по {subject_name} изтича след {days_left} {days}',
        "msg.assignment-graded": 'Вашата задача "{title}" по {subject_name} беше оценена{graded}',
        "msg.assignment-feedback": 'Получихте обратна връзка за задача "{title}" по {subject_name}',
        "msg.late-submission": 'Задача "{title}" по {subject_name} бе предадена след крайния срок',
        "msg.assignment-updated": 'Задача "{title}" по {subject_name} беше актуализирана',
        "msg.assignment-reminder": 'Задача "{title}" по {subject_name} все още не е предадена',
        "msg.quiz-published": 'Публикуван е нов тест "{title}" по {subject_name}',
        "msg.quiz-updated": 'Тест "{title}" по {subject_name} беше актуализиран',
        "msg.quiz-graded": 'Вашият тест "{title}" по {subject_name} беше оценен{graded}',
        "msg.quiz-reminder": 'Тест "{title}" по {subject_name} все още не е завършен',
        "msg.quiz-due-soon": 'Крайният срок за тест "{title}" по {subject_name} изтича след {days_left} {days}',
        "msg.new-grade": "Имате нова оценка {grade} по {subject_name}: {title}",
        "msg.edited-grade": "Вашата оценка по {subject_name}: {title} беше променена на {grade}",
        "msg.deleted-grade": "Вашата оценка {grade} по {subject_name}: {title} беше изтрита",
        "msg.grade-comment": "Получихте коментар към оценка по {subject_name}: {title}",
        "msg.student-review": "{subject} {review} забележка: {title}",
        "msg.teacher-feedback": "Получихте обратна връзка от {teacher_name}: {summary}",
        "msg.parent-comment": "Родителят на {student_name} остави коментар: {summary}",
        "msg.attendance-absent": "{subject} отсъствие по {subject_name} на {date}, {period_number}-и час",
        "msg.attendance-late": "{subject} закъснение по {subject_name} на {date}, {period_number}-и час",
        "msg.attendance-excused": "{subject} извинено отсъствие по {subject_name} на {date}, {period_number}-и час",
        "msg.attendance-updated": "Присъствието по {subject_name} на {date} беше актуализирано",
        "msg.system-maintenance": "Системата ще бъде недостъпна на {date} от {start_time} до {end_time} поради планирана поддръжка",
        "msg.password-changed": "Вашата парола беше променена успешно",
        "msg.account-updated": "Вашият профил беше актуализиран успешно",
        "msg.new-message": "Получихте ново съобщение от {sender_name}",
        "msg.message-reply": "{sender_name} отговори на вашето съобщение",
    },
    "en": {
        # Titles
        "new-assignment": "New assignment",
        "assignment-due-soon": "Deadline approaching",
        "assignment-graded": "Assignment graded",
        "assignment-feedback": "Assignment feedback",
        "late-submission": "Late submission",
        "assignment-updated": "Assignment updated",
        "assignment-reminder": "Assignment reminder",
        "quiz-published": "New quiz",
        "quiz-updated": "Quiz updated",
        "quiz-graded": "Quiz graded",
        "quiz-reminder": "Quiz reminder",
        "quiz-due-soon": "Quiz deadline approaching",
        "new-grade": "New grade",
        "edited-grade": "Grade changed",
        "deleted-grade": "Grade deleted",
        "grade-comment": "Grade comment",
        "student-review.positive": "Positive remark",
        "student-review.negative": "Negative remark",
        "teacher-feedback": "Feedback from teacher",
        "parent-comment": "Comment from parent",
        "attendance-absent": "Absence",
        "attendance-late": "Late arrival",
        "attendance-excused": "Excused absence",
        "attendance-updated": "Attendance updated",
        "system-announcement": "System announcement",
        "system-maintenance": "Scheduled maintenance",
        "password-changed": "Password changed",
        "account-updated": "Profile updated",
        "new-message": "New message",
        "message-reply": "Message reply",
        # Fragments
        "day.one": "day",
        "day.many": "days",
        "graded.with": " with {grade}",
        "subject.you": "You have",
        "subject.child": "Your child {student_name} has",
        "review.positive": "a positive",
        "review.negative": "a negative",
        # Messages
        "msg.new-assignment": 'You have a new assignment "{title}" in {subject_name}',
        "msg.assignment-due-soon": 'The assignment "{title}" in {subject_name} is due in {days_left} {days}',
        "msg.assignment-graded": 'Your assignment "{title}" in {subject_name} was graded{graded}',
        "msg.assignment-feedback": 'You received feedback on the assignment "{title}" in {subject_name}',
        "msg.late-submission": 'The assignment "{title}" in {subject_name} was submitted after the deadline',
        "msg.assignment-updated": 'The assignment "{title}" in {subject_name} was updated',
        "msg.assignment-reminder": 'The assignment "{title}" in {subject_name} has not been submitted yet',
        "msg.quiz-published": 'A new quiz "{title}" in {subject_name} was published',
        "msg.quiz-updated": 'The quiz "{title}" in {subject_name} was updated',
        "msg.quiz-graded": 'Your quiz "{title}" in {subject_name} was graded{graded}',
        "msg.quiz-reminder": 'The quiz "{title}" in {subject_name} has not been completed yet',
        "msg.quiz-due-soon": 'The quiz "{title}" in {subject_name} is due in {days_left} {days}',
        "msg.new-grade": "You have a new grade {grade} in {subject_name}: {title}",
        "msg.edited-grade": "Your grade in {subject_name}: {title} was changed to {grade}",
        "msg.deleted-grade": "Your grade {grade} in {subject_name}: {title} was deleted",
        "msg.grade-comment": "You received a comment on a grade in {subject_name}: {title}",
        "msg.student-review": "{subject} {review} remark: {title}",
        "msg.teacher-feedback": "You received feedback from {teacher_name}: {summary}",
        "msg.parent-comment": "The parent of {student_name} left a comment: {summary}",
        "msg.attendance-absent": "{subject} an absence in {subject_name} on {date}, period {period_number}",
        "msg.attendance-late": "{subject} a late arrival in {subject_name} on {date}, period {period_number}",
        "msg.attendance-excused": "{subject} an excused absence in {subject_name} on {date}, period {period_number}",
        "msg.attendance-updated": "Attendance in {subject_name} on {date} was updated",
        "msg.system-maintenance": "The system will be unavailable on {date} from {start_time} to {end_time} for scheduled maintenance",
        "msg.password-changed": "Your password was changed successfully",
        "msg.account-updated": "Your profile was updated successfully",
        "msg.new-message": "You received a new message from {sender_name}",
        "msg.message-reply": "{sender_name} replied to your message",
    },
}


class _Phrases:
    """Lookup helper bound to one language."""

    def __init__(self, language: str) -> None:
        self._table = PHRASES[language]

    def title(self, key: str) -> str:
        return self._table[key]

    def format(self, key: str, **values: Any) -> str:
        return self._table[key].format(**values)


def format_grade(grade: float | str | None) -> str:
    """Format a grade for display, dropping a redundant ".0"."""
    if grade is None:
        return ""
    if isinstance(grade, float) and grade.is_integer():
        return str(int(grade))
    return str(grade)


def grade_color(grade: float | str) -> str:
    """Green for excellent and very good, amber for average, red below."""
    try:
        value = float(grade)
    except (TypeError, ValueError):
        return INDIGO
    if value >= 4.5:
        return GREEN
    if value >= 3:
        return AMBER
    return RED


def _days(phrases: _Phrases, days_left: int) -> str:
    return phrases.title("day.one") if days_left == 1 else phrases.title("day.many")


def _addressee(phrases: _Phrases, is_for_student: bool, student_name: str | None) -> str:
    # Without a child's name the text can only address the recipient
    if is_for_student or not student_name:
        return phrases.title("subject.you")
    return phrases.format("subject.child", student_name=student_name)


# =============================================================================
# Renderers
# =============================================================================


def _coursework(
    category: NotificationCategory,
    icon: str,
    color: str,
) -> Callable[[NotificationKind, CourseworkParams, _Phrases], NotificationTemplate]:
    def renderer(
        kind: NotificationKind, params: CourseworkParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(
                f"msg.{kind.value}",
                title=params.title,
                subject_name=params.subject_name,
            ),
            category=category,
            priority=NotificationPriority.MEDIUM,
            icon=icon,
            color=color,
        )

    return renderer


def _due_soon(category: NotificationCategory):
    def renderer(
        kind: NotificationKind, params: DueSoonParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(
                f"msg.{kind.value}",
                title=params.title,
                subject_name=params.subject_name,
                days_left=params.days_left,
                days=_days(phrases, params.days_left),
            ),
            category=category,
            priority=NotificationPriority.HIGH,
            icon="⏰",
            color=AMBER,
        )

    return renderer


def _graded(category: NotificationCategory):
    def renderer(
        kind: NotificationKind, params: GradedCourseworkParams, phrases: _Phrases
    ) -> NotificationTemplate:
        graded = ""
        if params.grade not in (None, ""):
            graded = phrases.format("graded.with", grade=format_grade(params.grade))
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(
                f"msg.{kind.value}",
                title=params.title,
                subject_name=params.subject_name,
                graded=graded,
            ),
            category=category,
            priority=NotificationPriority.MEDIUM,
            icon="✅",
            color=GREEN,
        )

    return renderer


def _grade_entry(icon: str, color: str | None):
    def renderer(
        kind: NotificationKind, params: GradeParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(
                f"msg.{kind.value}",
                grade=format_grade(params.grade),
                subject_name=params.subject_name,
                title=params.title,
            ),
            category=NotificationCategory.GRADES,
            priority=NotificationPriority.MEDIUM,
            icon=icon,
            color=color or grade_color(params.grade),
        )

    return renderer


def _grade_comment(
    kind: NotificationKind, params: GradeCommentParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=phrases.format(
            f"msg.{kind.value}", subject_name=params.subject_name, title=params.title
        ),
        category=NotificationCategory.GRADES,
        priority=NotificationPriority.LOW,
        icon="💬",
        color=INDIGO,
    )


def _student_review(
    kind: NotificationKind, params: StudentReviewParams, phrases: _Phrases
) -> NotificationTemplate:
    positive = params.review_type == "positive"
    return NotificationTemplate(
        title=phrases.title(f"{kind.value}.{params.review_type}"),
        message=phrases.format(
            f"msg.{kind.value}",
            subject=_addressee(phrases, params.is_for_student, params.student_name),
            review=phrases.title(f"review.{params.review_type}"),
            title=params.title,
        ),
        category=NotificationCategory.FEEDBACK,
        priority=NotificationPriority.MEDIUM if positive else NotificationPriority.HIGH,
        icon="👍" if positive else "⚠️",
        color=GREEN if positive else RED,
    )


def _teacher_feedback(
    kind: NotificationKind, params: TeacherFeedbackParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=phrases.format(
            f"msg.{kind.value}", teacher_name=params.teacher_name, summary=params.summary
        ),
        category=NotificationCategory.FEEDBACK,
        priority=NotificationPriority.MEDIUM,
        icon="👨‍🏫",
        color=INDIGO,
    )


def _parent_comment(
    kind: NotificationKind, params: ParentCommentParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=phrases.format(
            f"msg.{kind.value}", student_name=params.student_name, summary=params.summary
        ),
        category=NotificationCategory.FEEDBACK,
        priority=NotificationPriority.MEDIUM,
        icon="👨‍👩‍👧‍👦",
        color=INDIGO,
    )


def _attendance(priority: NotificationPriority, icon: str, color: str):
    def renderer(
        kind: NotificationKind, params: AttendanceParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(
                f"msg.{kind.value}",
                subject=_addressee(phrases, params.is_for_student, params.student_name),
                subject_name=params.subject_name,
                date=params.date,
                period_number=params.period_number,
            ),
            category=NotificationCategory.ATTENDANCE,
            priority=priority,
            icon=icon,
            color=color,
        )

    return renderer


def _attendance_updated(
    kind: NotificationKind, params: AttendanceUpdatedParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=phrases.format(
            f"msg.{kind.value}", subject_name=params.subject_name, date=params.date
        ),
        category=NotificationCategory.ATTENDANCE,
        priority=NotificationPriority.MEDIUM,
        icon="🔄",
        color=INDIGO,
    )


def _system_announcement(
    kind: NotificationKind, params: SystemAnnouncementParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=params.message,
        category=NotificationCategory.SYSTEM,
        priority=params.priority or NotificationPriority.MEDIUM,
        icon="📢",
        color=GRAY,
    )


def _system_maintenance(
    kind: NotificationKind, params: MaintenanceParams, phrases: _Phrases
) -> NotificationTemplate:
    return NotificationTemplate(
        title=phrases.title(kind.value),
        message=phrases.format(
            f"msg.{kind.value}",
            date=params.date,
            start_time=params.start_time,
            end_time=params.end_time,
        ),
        category=NotificationCategory.SYSTEM,
        priority=NotificationPriority.MEDIUM,
        icon="🔧",
        color=AMBER,
    )


def _account(priority: NotificationPriority, icon: str, color: str):
    def renderer(
        kind: NotificationKind, params: EmptyParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.title(f"msg.{kind.value}"),
            category=NotificationCategory.SYSTEM,
            priority=priority,
            icon=icon,
            color=color,
        )

    return renderer


def _message(icon: str):
    def renderer(
        kind: NotificationKind, params: MessageParams, phrases: _Phrases
    ) -> NotificationTemplate:
        return NotificationTemplate(
            title=phrases.title(kind.value),
            message=phrases.format(f"msg.{kind.value}", sender_name=params.sender_name),
            category=NotificationCategory.MESSAGES,
            priority=NotificationPriority.MEDIUM,
            icon=icon,
            color=INDIGO,
        )

    return renderer


_A = NotificationCategory.ASSIGNMENTS
_Q = NotificationCategory.QUIZZES

RENDERERS: dict[NotificationKind, Callable[..., NotificationTemplate]] = {
    NotificationKind.NEW_ASSIGNMENT: _coursework(_A, "📝", INDIGO),
    NotificationKind.ASSIGNMENT_DUE_SOON: _due_soon(_A),
    NotificationKind.ASSIGNMENT_GRADED: _graded(_A),
    NotificationKind.ASSIGNMENT_FEEDBACK: _coursework(_A, "💬", INDIGO),
    NotificationKind.LATE_SUBMISSION: _coursework(_A, "⚠️", ORANGE),
    NotificationKind.ASSIGNMENT_UPDATED: _coursework(_A, "🔄", INDIGO),
    NotificationKind.ASSIGNMENT_REMINDER: _coursework(_A, "🔔", AMBER),
    NotificationKind.QUIZ_PUBLISHED: _coursework(_Q, "📋", INDIGO),
    NotificationKind.QUIZ_UPDATED: _coursework(_Q, "🔄", INDIGO),
    NotificationKind.QUIZ_GRADED: _graded(_Q),
    NotificationKind.QUIZ_REMINDER: _coursework(_Q, "🔔", AMBER),
    NotificationKind.QUIZ_DUE_SOON: _due_soon(_Q),
    NotificationKind.NEW_GRADE: _grade_entry("🎓", None),
    NotificationKind.EDITED_GRADE: _grade_entry("✏️", INDIGO),
    NotificationKind.DELETED_GRADE: _grade_entry("🗑️", RED),
    NotificationKind.GRADE_COMMENT: _grade_comment,
    NotificationKind.STUDENT_REVIEW: _student_review,
    NotificationKind.TEACHER_FEEDBACK: _teacher_feedback,
    NotificationKind.PARENT_COMMENT: _parent_comment,
    NotificationKind.ATTENDANCE_ABSENT: _attendance(NotificationPriority.HIGH, "❌", RED),
    NotificationKind.ATTENDANCE_LATE: _attendance(NotificationPriority.MEDIUM, "⏰", AMBER),
    NotificationKind.ATTENDANCE_EXCUSED: _attendance(NotificationPriority.LOW, "📝", INDIGO),
    NotificationKind.ATTENDANCE_UPDATED: _attendance_updated,
    NotificationKind.SYSTEM_ANNOUNCEMENT: _system_announcement,
    NotificationKind.SYSTEM_MAINTENANCE: _system_maintenance,
    NotificationKind.PASSWORD_CHANGED: _account(NotificationPriority.MEDIUM, "🔒", GREEN),
    NotificationKind.ACCOUNT_UPDATED: _account(NotificationPriority.LOW, "👤", INDIGO),
    NotificationKind.NEW_MESSAGE: _message("✉️"),
    NotificationKind.MESSAGE_REPLY: _message("↩️"),
}


def coerce_params(
    kind: NotificationKind,
    params: TemplateParams | Mapping[str, Any],
) -> TemplateParams:
    """Validate parameters into the payload model expected by a kind.

    Args:
        kind: Notification kind.
        params: Payload model instance or a mapping of raw values.

    Returns:
        The payload model for the kind.

    Raises:
        TemplateParamsError: If the parameters do not fit the kind.
    """
    model = PARAMS_MODEL_BY_KIND[kind]
    if isinstance(params, model):
        return params
    if isinstance(params, TemplateParams):
        raise TemplateParamsError(
            f"{kind.value} expects {model.__name__}, got {type(params).__name__}"
        )
    if not isinstance(params, Mapping):
        raise TemplateParamsError(
            f"{kind.value} parameters must be a mapping or {model.__name__}"
        )
    try:
        return model.model_validate(dict(params))
    except ValidationError as e:
        raise TemplateParamsError(f"Invalid parameters for {kind.value}: {e}") from e


def render(
    kind: NotificationKind | str,
    params: TemplateParams | Mapping[str, Any],
    language: str | None = None,
    default_language: str = DEFAULT_LANGUAGE,
) -> NotificationTemplate:
    """Render the template for a notification kind.

    Args:
        kind: Notification kind (enum member or its string value).
        params: Payload model for the kind, or a mapping validated into it.
        language: Language code; unknown codes fall back to default_language.
        default_language: Language used when language is missing or unknown.

    Returns:
        The rendered NotificationTemplate.

    Raises:
        UnknownNotificationKindError: If the kind is unknown.
        TemplateParamsError: If the parameters do not fit the kind.
    """
    kind = NotificationKind.parse(kind)
    payload = coerce_params(kind, params)

    if language not in PHRASES:
        if language is not None:
            logger.debug("No phrasebook for language %s, using %s", language, default_language)
        language = default_language

    return RENDERERS[kind](kind, payload, _Phrases(language))
