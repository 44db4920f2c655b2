# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for NotificationService."""

from datetime import datetime, time, timedelta
from unittest.mock import MagicMock

import pytest

from src.core.config.settings import NotificationSettings
from src.infrastructure.notifications.service import (
    NotificationContentError,
    NotificationService,
    get_notification_service,
    reset_notification_service,
)
from src.infrastructure.notifications.store.base import (
    NotificationNotFoundError,
    StoreError,
)
from src.infrastructure.notifications.store.sqlalchemy import SqlAlchemyNotificationStore
from src.infrastructure.notifications.templates import TemplateParamsError
from src.infrastructure.notifications.types import (
    NotificationAction,
    NotificationCategory,
    NotificationFields,
    NotificationKind,
    NotificationPriority,
    UnknownNotificationKindError,
    UserNotificationPreferences,
)

SCHOOL = "school-1"

ABSENT_PARAMS = {
    "subjectName": "Math",
    "date": "12.03.2025",
    "periodNumber": 2,
    "isForStudent": True,
}


def ticking_clock(start: datetime):
    """Clock that advances one minute per call."""
    state = {"now": start}

    def clock() -> datetime:
        state["now"] += timedelta(minutes=1)
        return state["now"]

    return clock


def disable(category: str) -> UserNotificationPreferences:
    return UserNotificationPreferences.model_validate(
        {"categoryPreferences": {category: {"enabled": False}}}
    )


class TestCreateNotification:
    """Tests for single delivery."""

    @pytest.mark.asyncio
    async def test_attendance_absent_end_to_end(self, service, store, fixed_now) -> None:
        notification_id = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.ATTENDANCE_ABSENT, params=ABSENT_PARAMS
        )

        assert notification_id is not None
        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.title == "Отсъствие"
        assert stored.message == "Имате отсъствие по Math на 12.03.2025, 2-и час"
        assert stored.category == NotificationCategory.ATTENDANCE
        assert stored.priority == NotificationPriority.HIGH
        assert stored.created_at == fixed_now
        assert stored.expires_at == fixed_now + timedelta(days=3)
        assert stored.link == "/student/attendance"
        assert stored.icon == "❌"
        assert stored.read is False

    @pytest.mark.asyncio
    async def test_accepts_kind_string(self, service, store) -> None:
        notification_id = await service.create_notification(
            SCHOOL, "teacher-1", "new-message", params={"senderName": "Ivan"}
        )

        stored = await store.get(SCHOOL, "teacher-1", notification_id)
        assert stored.kind == NotificationKind.NEW_MESSAGE
        assert stored.link == "/teacher/messages"

    @pytest.mark.asyncio
    async def test_unknown_language_uses_configured_default(self, store, directory, fixed_now) -> None:
        service = NotificationService(
            store,
            directory,
            settings=NotificationSettings(default_language="en"),
            clock=lambda: fixed_now,
        )

        notification_id = await service.create_notification(
            SCHOOL, "teacher-1", "new-message", params={"senderName": "Ivan"}, language="fr"
        )

        stored = await store.get(SCHOOL, "teacher-1", notification_id)
        assert stored.title == "New message"
        assert stored.message == "You received a new message from Ivan"

    @pytest.mark.asyncio
    async def test_late_submission_without_params_is_a_system_notice(
        self, service, store, directory
    ) -> None:
        fields = NotificationFields(title="Late", message="Essay was handed in late")
        directory.preferences["teacher-1"] = disable("system")

        suppressed = await service.create_notification(
            SCHOOL, "teacher-1", NotificationKind.LATE_SUBMISSION, fields=fields
        )
        notification_id = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.LATE_SUBMISSION, fields=fields
        )

        assert suppressed is None
        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.category == NotificationCategory.SYSTEM
        assert stored.link == "/student/dashboard"

    @pytest.mark.asyncio
    async def test_explicit_fields_win_over_template(self, service, store, fixed_now) -> None:
        notification_id = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.NEW_GRADE,
            fields=NotificationFields(
                title="Excellent!",
                priority=NotificationPriority.URGENT,
                color="#000000",
            ),
            params={"title": "Test 1", "subjectName": "Math", "grade": 6},
            language="en",
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.title == "Excellent!"
        assert stored.message == "You have a new grade 6 in Math: Test 1"
        assert stored.priority == NotificationPriority.URGENT
        assert stored.color == "#000000"
        assert stored.icon == "🎓"
        assert stored.expires_at == fixed_now + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_classifier_fills_gaps_without_params(self, service, store, fixed_now) -> None:
        notification_id = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.GRADE_COMMENT,
            fields=NotificationFields(title="Comment", message="See the remark on your test"),
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.category == NotificationCategory.GRADES
        assert stored.priority == NotificationPriority.LOW
        assert stored.expires_at == fixed_now + timedelta(days=14)
        assert stored.icon is None

    @pytest.mark.asyncio
    async def test_template_category_is_used(self, service, store) -> None:
        notification_id = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.LATE_SUBMISSION,
            params={"title": "Essay", "subjectName": "History"},
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.category == NotificationCategory.ASSIGNMENTS

    @pytest.mark.asyncio
    async def test_explicit_link_expiry_and_extras_are_kept(self, service, store, fixed_now) -> None:
        expires = fixed_now + timedelta(hours=2)
        action = NotificationAction(label="Open", url="/student/grades")

        notification_id = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.NEW_GRADE,
            fields=NotificationFields(
                link="/custom",
                expires_at=expires,
                related_id="grade-9",
                actions=[action],
                metadata={"gradeId": "grade-9"},
                send_push=True,
            ),
            params={"title": "Test 1", "subjectName": "Math", "grade": 5},
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.link == "/custom"
        assert stored.expires_at == expires
        assert stored.related_id == "grade-9"
        assert stored.actions == [action]
        assert stored.metadata == {"gradeId": "grade-9"}
        assert stored.send_push is True

    @pytest.mark.asyncio
    async def test_related_id_builds_detail_link(self, service, store) -> None:
        notification_id = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.NEW_ASSIGNMENT,
            fields=NotificationFields(related_id="a1"),
            params={"title": "Essay", "subjectName": "History"},
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.link == "/student/assignments/a1"

    @pytest.mark.asyncio
    async def test_missing_content_fails_before_io(self, service, store, directory) -> None:
        with pytest.raises(NotificationContentError):
            await service.create_notification(
                SCHOOL,
                "student-1",
                NotificationKind.NEW_GRADE,
                fields=NotificationFields(title="Only a title"),
            )

        assert store.all() == []
        assert directory.preference_lookups == []

    @pytest.mark.asyncio
    async def test_unknown_kind(self, service, store) -> None:
        with pytest.raises(UnknownNotificationKindError):
            await service.create_notification(SCHOOL, "student-1", "detention")

        assert store.all() == []

    @pytest.mark.asyncio
    async def test_bad_params(self, service) -> None:
        with pytest.raises(TemplateParamsError):
            await service.create_notification(
                SCHOOL, "student-1", NotificationKind.NEW_MESSAGE, params={"sender": "Ivan"}
            )

    @pytest.mark.asyncio
    async def test_disabled_category_suppresses(self, service, store, directory) -> None:
        directory.preferences["student-1"] = disable("attendance")

        result = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.ATTENDANCE_ABSENT, params=ABSENT_PARAMS
        )

        assert result is None
        assert store.all() == []

    @pytest.mark.asyncio
    async def test_quiet_hours_suppress_but_urgent_passes(self, service, store, directory) -> None:
        # Fixed clock is Wednesday 12:00 in Sofia
        directory.preferences["student-1"] = UserNotificationPreferences(
            quiet_hours_start=time(11, 0),
            quiet_hours_end=time(13, 0),
            quiet_hours_days={3},
        )
        params = {"message": "Evacuation drill"}

        suppressed = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.SYSTEM_ANNOUNCEMENT, params=params
        )
        delivered = await service.create_notification(
            SCHOOL,
            "student-1",
            NotificationKind.SYSTEM_ANNOUNCEMENT,
            fields=NotificationFields(priority=NotificationPriority.URGENT),
            params=params,
        )

        assert suppressed is None
        assert delivered is not None
        assert len(store.all()) == 1

    @pytest.mark.asyncio
    async def test_preference_failure_delivers(self, service, store, directory) -> None:
        directory.fail_preferences = True

        notification_id = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.ATTENDANCE_ABSENT, params=ABSENT_PARAMS
        )

        assert notification_id is not None
        assert len(store.all()) == 1

    @pytest.mark.asyncio
    async def test_role_failure_degrades_link(self, service, store, directory) -> None:
        directory.fail_roles = True

        notification_id = await service.create_notification(
            SCHOOL, "student-1", NotificationKind.ATTENDANCE_ABSENT, params=ABSENT_PARAMS
        )

        stored = await store.get(SCHOOL, "student-1", notification_id)
        assert stored.link == "/attendance"

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, service, store) -> None:
        store.fail_writes = True

        with pytest.raises(StoreError):
            await service.create_notification(
                SCHOOL, "student-1", NotificationKind.ATTENDANCE_ABSENT, params=ABSENT_PARAMS
            )


class TestCreateNotificationBulk:
    """Tests for bulk delivery."""

    GRADE_PARAMS = {"title": "Test 1", "subjectName": "Math", "grade": 5}

    @pytest.mark.asyncio
    async def test_duplicates_are_dropped(self, service, store) -> None:
        result = await service.create_notification_bulk(
            SCHOOL,
            ["student-1", "teacher-1", "student-1", "parent-1"],
            NotificationKind.NEW_GRADE,
            params=self.GRADE_PARAMS,
        )

        assert result.recipients_count == 3
        assert result.batch_sizes == [3]
        assert len(result.notification_ids) == 3
        assert sorted(n.user_id for n in store.all()) == ["parent-1", "student-1", "teacher-1"]

    @pytest.mark.asyncio
    async def test_recipients_are_chunked(self, service, store) -> None:
        user_ids = [f"user-{i}" for i in range(1200)]

        result = await service.create_notification_bulk(
            SCHOOL, user_ids, NotificationKind.NEW_GRADE, params=self.GRADE_PARAMS
        )

        assert result.batch_sizes == [500, 500, 200]
        assert store.committed_batches == [500, 500, 200]
        assert len(store.all()) == 1200

    @pytest.mark.asyncio
    async def test_batch_size_follows_settings(self, store, directory, fixed_now) -> None:
        service = NotificationService(
            store, directory, settings=NotificationSettings(batch_size=2), clock=lambda: fixed_now
        )

        result = await service.create_notification_bulk(
            SCHOOL, ["a", "b", "c", "d", "e"], NotificationKind.NEW_GRADE, params=self.GRADE_PARAMS
        )

        assert result.batch_sizes == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_preferences_are_not_consulted(self, service, store, directory) -> None:
        directory.preferences["student-1"] = disable("grades")

        result = await service.create_notification_bulk(
            SCHOOL, ["student-1"], NotificationKind.NEW_GRADE, params=self.GRADE_PARAMS
        )

        assert result.recipients_count == 1
        assert len(store.all()) == 1
        assert directory.preference_lookups == []

    @pytest.mark.asyncio
    async def test_links_follow_each_recipients_role(self, service, store) -> None:
        await service.create_notification_bulk(
            SCHOOL,
            ["student-1", "teacher-1", "parent-1"],
            NotificationKind.SYSTEM_MAINTENANCE,
            params={"date": "15.03.2025", "startTime": "22:00", "endTime": "23:00"},
        )

        links = {n.user_id: n.link for n in store.all()}
        assert links == {
            "student-1": "/student/dashboard",
            "teacher-1": "/teacher/dashboard",
            "parent-1": "/parent/dashboard/school-1",
        }

    @pytest.mark.asyncio
    async def test_failed_chunk_keeps_earlier_chunks(self, service, store) -> None:
        store.fail_on_commit = 2
        user_ids = [f"user-{i}" for i in range(1200)]

        with pytest.raises(StoreError):
            await service.create_notification_bulk(
                SCHOOL, user_ids, NotificationKind.NEW_GRADE, params=self.GRADE_PARAMS
            )

        assert store.committed_batches == [500]
        assert len(store.all()) == 500

    @pytest.mark.asyncio
    async def test_no_recipients(self, service, store) -> None:
        result = await service.create_notification_bulk(
            SCHOOL, [], NotificationKind.NEW_GRADE, params=self.GRADE_PARAMS
        )

        assert result.recipients_count == 0
        assert result.batch_sizes == []
        assert store.commit_attempts == 0

    @pytest.mark.asyncio
    async def test_missing_content_fails_before_io(self, service, store) -> None:
        with pytest.raises(NotificationContentError):
            await service.create_notification_bulk(SCHOOL, ["student-1"], NotificationKind.NEW_GRADE)

        assert store.commit_attempts == 0

    @pytest.mark.asyncio
    async def test_notify_assignment_due_soon(self, service, store, fixed_now) -> None:
        result = await service.notify_assignment_due_soon(
            SCHOOL,
            assignment_id="a1",
            assignment_title="Essay",
            subject_name="History",
            student_ids=["student-1", "student-1"],
            days_left=2,
        )

        assert result.recipients_count == 1
        [stored] = store.all()
        assert stored.kind == NotificationKind.ASSIGNMENT_DUE_SOON
        assert stored.priority == NotificationPriority.HIGH
        assert stored.related_id == "a1"
        assert stored.link == "/student/assignments/a1"
        assert stored.message.endswith("изтича след 2 дни")
        assert stored.expires_at == fixed_now + timedelta(days=3)


class TestListingAndCounts:
    """Tests for the notification center read side."""

    @pytest.fixture
    def service(self, store, directory, fixed_now, notification_settings) -> NotificationService:
        return NotificationService(
            store, directory, settings=notification_settings, clock=ticking_clock(fixed_now)
        )

    async def _seed(self, service: NotificationService) -> list[str]:
        ids = []
        for kind, params in [
            (NotificationKind.NEW_GRADE, {"title": "T1", "subjectName": "Math", "grade": 6}),
            (NotificationKind.NEW_MESSAGE, {"senderName": "Ivan"}),
            (NotificationKind.NEW_GRADE, {"title": "T2", "subjectName": "Math", "grade": 3}),
            (NotificationKind.ATTENDANCE_LATE, ABSENT_PARAMS),
            (NotificationKind.NEW_MESSAGE, {"senderName": "Petya"}),
        ]:
            ids.append(await service.create_notification(SCHOOL, "student-1", kind, params=params))
        return ids

    @pytest.mark.asyncio
    async def test_newest_first(self, service) -> None:
        ids = await self._seed(service)

        page = await service.list_notifications(SCHOOL, "student-1")

        assert [n.id for n in page.items] == list(reversed(ids))
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_cursor_pagination(self, service) -> None:
        ids = await self._seed(service)

        first = await service.list_notifications(SCHOOL, "student-1", limit=2)
        second = await service.list_notifications(
            SCHOOL, "student-1", limit=2, cursor=first.next_cursor.isoformat()
        )
        third = await service.list_notifications(
            SCHOOL, "student-1", limit=2, cursor=second.next_cursor
        )

        seen = [n.id for n in first.items + second.items + third.items]
        assert seen == list(reversed(ids))
        assert third.next_cursor is None

    @pytest.mark.asyncio
    async def test_zero_limit_is_not_the_default_page(self, service) -> None:
        await self._seed(service)

        page = await service.list_notifications(SCHOOL, "student-1", limit=0)

        assert page.items == []
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self, store, directory, fixed_now) -> None:
        service = NotificationService(
            store,
            directory,
            settings=NotificationSettings(page_size=3),
            clock=ticking_clock(fixed_now),
        )
        ids = await self._seed(service)

        page = await service.list_notifications(SCHOOL, "student-1")

        assert [n.id for n in page.items] == list(reversed(ids))[:3]
        assert page.next_cursor == page.items[-1].created_at

    @pytest.mark.asyncio
    async def test_filters(self, service) -> None:
        ids = await self._seed(service)
        await service.mark_read(SCHOOL, "student-1", ids[1])

        grades = await service.list_notifications(SCHOOL, "student-1", category="grades")
        unread_messages = await service.list_notifications(
            SCHOOL, "student-1", category=NotificationCategory.MESSAGES, only_unread=True
        )

        assert [n.id for n in grades.items] == [ids[2], ids[0]]
        assert [n.id for n in unread_messages.items] == [ids[4]]

    @pytest.mark.asyncio
    async def test_other_users_are_invisible(self, service) -> None:
        await self._seed(service)

        page = await service.list_notifications(SCHOOL, "teacher-1")

        assert page.items == []
        assert await service.count_unread(SCHOOL, "teacher-1") == 0

    @pytest.mark.asyncio
    async def test_count_unread_tracks_reads(self, service) -> None:
        ids = await self._seed(service)
        assert await service.count_unread(SCHOOL, "student-1") == 5

        await service.mark_read(SCHOOL, "student-1", ids[0])
        await service.mark_read(SCHOOL, "student-1", ids[0])

        assert await service.count_unread(SCHOOL, "student-1") == 4

    @pytest.mark.asyncio
    async def test_count_by_category_is_zero_filled(self, service) -> None:
        ids = await self._seed(service)
        await service.mark_read(SCHOOL, "student-1", ids[4])

        total = await service.count_by_category(SCHOOL, "student-1")
        unread = await service.count_by_category(SCHOOL, "student-1", only_unread=True)

        assert set(total) == set(NotificationCategory)
        assert total[NotificationCategory.GRADES] == 2
        assert total[NotificationCategory.MESSAGES] == 2
        assert total[NotificationCategory.ATTENDANCE] == 1
        assert total[NotificationCategory.QUIZZES] == 0
        assert unread[NotificationCategory.MESSAGES] == 1

    @pytest.mark.asyncio
    async def test_read_failures_return_empty_results(self, service, store) -> None:
        await self._seed(service)
        store.fail_reads = True

        page = await service.list_notifications(SCHOOL, "student-1")
        counts = await service.count_by_category(SCHOOL, "student-1")

        assert page.items == []
        assert page.next_cursor is None
        assert await service.count_unread(SCHOOL, "student-1") == 0
        assert all(count == 0 for count in counts.values())


class TestLifecycle:
    """Tests for mark-read and delete operations."""

    @pytest.fixture
    def service(self, store, directory, fixed_now) -> NotificationService:
        return NotificationService(
            store, directory, settings=NotificationSettings(batch_size=2), clock=ticking_clock(fixed_now)
        )

    async def _seed(self, service: NotificationService) -> list[str]:
        result = []
        for i in range(3):
            result.append(
                await service.create_notification(
                    SCHOOL, "student-1", NotificationKind.NEW_MESSAGE, params={"senderName": f"S{i}"}
                )
            )
        for i in range(2):
            result.append(
                await service.create_notification(
                    SCHOOL,
                    "student-1",
                    NotificationKind.NEW_GRADE,
                    params={"title": f"T{i}", "subjectName": "Math", "grade": 5},
                )
            )
        return result

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, service) -> None:
        with pytest.raises(NotificationNotFoundError):
            await service.mark_read(SCHOOL, "student-1", "missing")

    @pytest.mark.asyncio
    async def test_mark_all_read_is_chunked(self, service, store) -> None:
        await self._seed(service)

        marked = await service.mark_all_read(SCHOOL, "student-1")

        assert marked == 5
        assert store.committed_batches == [2, 2, 1]
        assert await service.count_unread(SCHOOL, "student-1") == 0

    @pytest.mark.asyncio
    async def test_mark_all_read_by_category(self, service) -> None:
        await self._seed(service)

        marked = await service.mark_all_read(SCHOOL, "student-1", category="messages")

        assert marked == 3
        unread = await service.count_by_category(SCHOOL, "student-1", only_unread=True)
        assert unread[NotificationCategory.MESSAGES] == 0
        assert unread[NotificationCategory.GRADES] == 2

    @pytest.mark.asyncio
    async def test_mark_all_read_with_nothing_unread(self, service, store) -> None:
        assert await service.mark_all_read(SCHOOL, "student-1") == 0
        assert store.commit_attempts == 0

    @pytest.mark.asyncio
    async def test_delete_all_read(self, service, store) -> None:
        ids = await self._seed(service)
        for notification_id in ids[:3]:
            await service.mark_read(SCHOOL, "student-1", notification_id)

        deleted = await service.delete_all_read(SCHOOL, "student-1")

        assert deleted == 3
        assert store.committed_batches == [2, 1]
        remaining = await service.list_notifications(SCHOOL, "student-1")
        assert {n.id for n in remaining.items} == set(ids[3:])

    @pytest.mark.asyncio
    async def test_delete_notification(self, service) -> None:
        ids = await self._seed(service)

        await service.delete_notification(SCHOOL, "student-1", ids[0])
        await service.delete_notification(SCHOOL, "student-1", "missing")

        page = await service.list_notifications(SCHOOL, "student-1")
        assert ids[0] not in {n.id for n in page.items}
        assert len(page.items) == 4

    @pytest.mark.asyncio
    async def test_lifecycle_write_failures_propagate(self, service, store) -> None:
        ids = await self._seed(service)
        store.fail_writes = True
        store.fail_on_commit = store.commit_attempts + 1

        with pytest.raises(StoreError):
            await service.mark_read(SCHOOL, "student-1", ids[0])
        with pytest.raises(StoreError):
            await service.delete_notification(SCHOOL, "student-1", ids[0])
        with pytest.raises(StoreError):
            await service.mark_all_read(SCHOOL, "student-1")


class TestGetUsersNotificationSettings:
    """Tests for the bulk settings fetch."""

    @pytest.mark.asyncio
    async def test_defaults_for_missing_users(self, service, directory) -> None:
        directory.preferences["student-1"] = disable("grades")

        settings = await service.get_users_notification_settings(
            SCHOOL, ["student-1", "teacher-1", "student-1"]
        )

        assert list(settings) == ["student-1", "teacher-1"]
        assert not settings["student-1"].is_category_enabled(NotificationCategory.GRADES)
        assert settings["teacher-1"] == UserNotificationPreferences()

    @pytest.mark.asyncio
    async def test_failures_return_defaults(self, service, directory) -> None:
        directory.fail_preferences = True

        settings = await service.get_users_notification_settings(SCHOOL, ["student-1"])

        assert settings == {"student-1": UserNotificationPreferences()}


class TestGetNotificationService:
    """Tests for the service singleton."""

    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_notification_service()
        yield
        reset_notification_service()

    def test_wires_sqlalchemy_adapters(self) -> None:
        service = get_notification_service(session_factory=MagicMock())

        assert isinstance(service._store, SqlAlchemyNotificationStore)
        assert service._store.max_batch_size == service.batch_size == 500
        assert service.settings.default_language == "bg"

    def test_returns_same_instance_until_reset(self) -> None:
        first = get_notification_service(session_factory=MagicMock())

        assert get_notification_service() is first

        reset_notification_service()
        assert get_notification_service(session_factory=MagicMock()) is not first
