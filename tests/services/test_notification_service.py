'''
Tests for the NotificationService: delivery helpers and the notification center.
'''
import uuid
import pytest
from fastapi import HTTPException

from tutor_hub_backend.services.notification_service import NotificationService, LATEST_UNSEEN_LIMIT
from tutor_hub_backend.database.db_enums import NotificationType, UserRole
from tutor_hub_backend.models import notification as notification_models
from tutor_hub_backend.common.time_utils import utcnow

from tests.database import factories


@pytest.fixture
async def inbox(db_session, test_parent):
    """Three notifications for the test parent: academic, billing (read) and system."""
    academic = factories.NotificationFactory(user_id=test_parent.id, type=NotificationType.ACADEMIC.value, title="Quiz graded")
    billing = factories.NotificationFactory(
        user_id=test_parent.id, type=NotificationType.BILLING.value, title="Invoice paid", read_at=utcnow()
    )
    system = factories.NotificationFactory(user_id=test_parent.id, type=NotificationType.SYSTEM.value, title="Maintenance tonight")
    await db_session.flush()
    return academic, billing, system


@pytest.mark.anyio
class TestDelivery:

    async def test_send_to_users_skips_unknown_and_inactive(
        self, notification_service: NotificationService, test_parent, db_session
    ):
        inactive = factories.ParentFactory(is_active=False)
        await db_session.flush()

        sent = await notification_service.send_to_users(
            [test_parent.id, test_parent.id, inactive.id, uuid.uuid4()],
            NotificationType.SYSTEM, "Hello", "Welcome aboard",
        )

        assert sent == 1
        assert await notification_service.unread_count(test_parent) == 1

    async def test_send_to_role(self, notification_service: NotificationService, test_parent, test_teacher):
        sent = await notification_service.send_to_role(UserRole.TEACHER, NotificationType.ACADEMIC, "Term starts", "Monday")
        assert sent == 1
        assert await notification_service.unread_count(test_teacher) == 1
        assert await notification_service.unread_count(test_parent) == 0

    async def test_broadcast_is_admin_only(self, notification_service: NotificationService, test_parent):
        data = notification_models.NotificationSend(title="Hi", message="There", everyone=True)
        with pytest.raises(HTTPException) as exc_info:
            await notification_service.broadcast(data, test_parent)
        assert exc_info.value.status_code == 403

    async def test_broadcast_to_everyone(
        self, notification_service: NotificationService, test_admin, test_parent, test_teacher
    ):
        result = await notification_service.broadcast(
            notification_models.NotificationSend(title="New feature", message="Try the calendar", everyone=True),
            test_admin,
        )
        assert result.sent == 3


def test_broadcast_needs_exactly_one_audience():
    with pytest.raises(ValueError):
        notification_models.NotificationSend(title="Hi", message="There", everyone=True, role=UserRole.PARENT)
    with pytest.raises(ValueError):
        notification_models.NotificationSend(title="Hi", message="There")


@pytest.mark.anyio
class TestNotificationCenter:

    async def test_filters(self, notification_service: NotificationService, inbox, test_parent):
        everything = await notification_service.list_notifications(test_parent, notification_models.NotificationFilters())
        academic = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(type=NotificationType.ACADEMIC)
        )
        unread = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(unread_only=True)
        )
        searched = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(search="maintenance")
        )
        today = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(date_range="today")
        )

        assert everything.total == 3
        assert [n.title for n in academic.items] == ["Quiz graded"]
        assert unread.total == 2
        assert [n.title for n in searched.items] == ["Maintenance tonight"]
        assert today.total == 3

    async def test_search_wildcards_match_literally(
        self, notification_service: NotificationService, test_parent, db_session
    ):
        for title in ("Save 50% on Premium", "Save 500 points", "Term_2 report", "Term 2 report"):
            factories.NotificationFactory(user_id=test_parent.id, title=title, message="See details inside.")
        await db_session.flush()

        percent = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(search="50%")
        )
        underscore = await notification_service.list_notifications(
            test_parent, notification_models.NotificationFilters(search="term_2")
        )

        assert [n.title for n in percent.items] == ["Save 50% on Premium"]
        assert [n.title for n in underscore.items] == ["Term_2 report"]

    async def test_stats(self, notification_service: NotificationService, inbox, test_parent):
        stats = await notification_service.get_stats(test_parent)
        assert stats.total == 3
        assert stats.total_unread == 2
        assert stats.today == 3
        assert (stats.academic, stats.billing, stats.system) == (1, 1, 1)

    async def test_mark_read_and_unread(self, notification_service: NotificationService, inbox, test_parent):
        academic, _, _ = inbox

        read = await notification_service.mark_as_read(academic.id, test_parent)
        assert read.read_at is not None
        assert await notification_service.unread_count(test_parent) == 1

        unread = await notification_service.mark_as_unread(academic.id, test_parent)
        assert unread.read_at is None
        assert await notification_service.unread_count(test_parent) == 2

    async def test_mark_all_as_read(self, notification_service: NotificationService, inbox, test_parent):
        assert await notification_service.mark_all_as_read(test_parent) == 2
        assert await notification_service.unread_count(test_parent) == 0

    async def test_other_users_notifications_are_not_found(
        self, notification_service: NotificationService, inbox, test_teacher
    ):
        academic, _, _ = inbox
        with pytest.raises(HTTPException) as exc_info:
            await notification_service.mark_as_read(academic.id, test_teacher)
        assert exc_info.value.status_code == 404

    async def test_bulk_delete_ignores_foreign_ids(
        self, notification_service: NotificationService, inbox, test_parent, test_teacher, db_session
    ):
        foreign = factories.NotificationFactory(user_id=test_teacher.id)
        await db_session.flush()
        academic, billing, _ = inbox

        result = await notification_service.bulk_action(
            notification_models.BulkNotificationAction(
                action="delete", notification_ids=[academic.id, billing.id, foreign.id]
            ),
            test_parent,
        )

        assert result.affected == 2
        page = await notification_service.list_notifications(test_parent, notification_models.NotificationFilters())
        assert page.total == 1
        assert await notification_service.unread_count(test_teacher) == 1

    async def test_check_for_new_marks_as_seen(
        self, notification_service: NotificationService, test_parent, db_session
    ):
        for _ in range(LATEST_UNSEEN_LIMIT + 2):
            factories.NotificationFactory(user_id=test_parent.id)
        await db_session.flush()

        first = await notification_service.check_for_new(test_parent)
        second = await notification_service.check_for_new(test_parent)
        third = await notification_service.check_for_new(test_parent)

        assert len(first) == LATEST_UNSEEN_LIMIT
        assert len(second) == 2
        assert third == []
