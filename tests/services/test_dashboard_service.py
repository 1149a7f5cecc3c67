'''
Tests for the DashboardService.
'''
import pytest
from datetime import datetime, timedelta, timezone, time
from decimal import Decimal
from fastapi import HTTPException

from tutor_hub_backend.services.dashboard_service import DashboardService
from tutor_hub_backend.database.db_enums import SessionStatus, TicketStatus

from tests.constants import TEST_CHILD_ID, TEST_TEACHER_ID
from tests.database import factories


def days_ahead(days: int, hour: int) -> datetime:
    day = (datetime.now(timezone.utc) + timedelta(days=days)).date()
    return datetime.combine(day, time(hour), tzinfo=timezone.utc)


@pytest.fixture
async def lessons(db_session, test_parent, test_subject):
    """Two upcoming lessons on different days and one completed lesson last week."""
    def lesson(start, **extra):
        return factories.LearningSessionFactory(
            teacher_id=TEST_TEACHER_ID, children_id=TEST_CHILD_ID, subject_id=test_subject.id,
            start_time=start, end_time=start + timedelta(hours=1), **extra
        )

    upcoming = [lesson(days_ahead(2, 10)), lesson(days_ahead(1, 9))]
    done = lesson(days_ahead(-7, 9), status=SessionStatus.COMPLETED.value, attended=True, performance_score=80)
    await db_session.flush()
    return upcoming, done


@pytest.mark.anyio
class TestDashboards:

    async def test_parent_dashboard_groups_upcoming_by_day(
        self, dashboard_service: DashboardService, lessons, test_parent
    ):
        dashboard = await dashboard_service.get_dashboard(test_parent)

        assert dashboard.role == "parent"
        assert dashboard.teacher is None
        parent = dashboard.parent
        assert parent.children_count == 1
        assert [day.date for day in parent.upcoming] == [days_ahead(1, 9).date(), days_ahead(2, 10).date()]
        assert parent.stats.total_sessions == 3
        assert parent.stats.completed_sessions == 1
        assert parent.stats.upcoming_sessions == 2
        assert parent.stats.average_performance == Decimal("80.00")

    async def test_teacher_dashboard(
        self, dashboard_service: DashboardService, lessons, test_teacher, db_session
    ):
        factories.CourseFactory(teacher_profile_id=test_teacher.teacher_profile.id, subject_id=lessons[1].subject_id)
        await db_session.flush()

        teacher = (await dashboard_service.get_dashboard(test_teacher)).teacher

        assert teacher.courses_count == 1
        assert teacher.students_count == 1
        assert len(teacher.upcoming_sessions) == 2
        assert teacher.upcoming_sessions[0].start_time < teacher.upcoming_sessions[1].start_time
        assert teacher.pending_grading == 0

    async def test_client_dashboard_without_subscription(self, dashboard_service: DashboardService, test_client_user):
        client = (await dashboard_service.get_dashboard(test_client_user)).client
        assert client.assigned_assessments == 0
        assert client.subscription is None

    async def test_admin_dashboard(
        self, dashboard_service: DashboardService, test_admin, test_client_user, lessons, test_parent, db_session
    ):
        factories.SupportTicketFactory(user_id=test_parent.id)
        factories.SupportTicketFactory(user_id=test_parent.id, status=TicketStatus.CLOSED.value)
        await db_session.flush()

        admin = (await dashboard_service.get_dashboard(test_admin)).admin

        assert admin.users_by_role == {"parent": 1, "teacher": 1, "client": 1, "admin": 1}
        assert admin.total_sessions == 3
        assert admin.scheduled_sessions == 2
        assert admin.open_tickets == 1
        assert admin.pending_teachers == 0
        assert admin.revenue == Decimal("0.00")

    async def test_profileless_account_has_no_dashboard(
        self, dashboard_service: DashboardService, user_service, db_session
    ):
        lonely = factories.ClientFactory()
        await db_session.flush()
        lonely = await user_service.get_user_by_id(lonely.id)

        with pytest.raises(HTTPException) as e:
            await dashboard_service.get_dashboard(lonely)
        assert e.value.status_code == 404
