'''
Per-role dashboard summaries.
'''
from collections import defaultdict
from decimal import Decimal
from typing import Annotated
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func, distinct, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    UserRole, SessionStatus, SubmissionStatus, PaymentStatus, TicketStatus, TeacherProfileStatus
)
from ..models import dashboard as dashboard_models
from ..models import sessions as session_models
from ..core.date_ranges import zone_for
from ..common.time_utils import as_utc
from ..common.logger import log
from .session_service import SessionService
from .notification_service import NotificationService
from .billing_service import BillingService

UPCOMING_LIMIT = 5


class DashboardService:
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        session_service: Annotated[SessionService, Depends(SessionService)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ):
        self.db = db
        self.session_service = session_service
        self.notification_service = notification_service
        self.billing_service = billing_service

    async def _count(self, stmt) -> int:
        return (await self.db.execute(stmt)).scalar_one()

    async def parent_dashboard(self, current_user: db_models.Users) -> dashboard_models.ParentDashboard:
        profile = current_user.parent_profile
        children_count = await self._count(
            select(func.count(db_models.Children.id)).filter(db_models.Children.parent_profile_id == profile.id)
        )
        upcoming = await self.session_service.upcoming_sessions(current_user, limit=UPCOMING_LIMIT)

        zone = zone_for(current_user.timezone)
        by_day = defaultdict(list)
        for session in upcoming:
            by_day[as_utc(session.start_time).astimezone(zone).date()].append(
                session_models.SessionRead.model_validate(session)
            )
        return dashboard_models.ParentDashboard(
            children_count=children_count,
            stats=await self.session_service.get_stats(current_user),
            upcoming=[dashboard_models.UpcomingDay(date=day, sessions=items) for day, items in sorted(by_day.items())],
            unread_notifications=await self.notification_service.unread_count(current_user),
        )

    async def teacher_dashboard(self, current_user: db_models.Users) -> dashboard_models.TeacherDashboard:
        profile = current_user.teacher_profile
        courses_count = await self._count(
            select(func.count(db_models.Courses.id)).filter(db_models.Courses.teacher_profile_id == profile.id)
        )
        taught_in_sessions = select(db_models.LearningSessions.children_id).filter(
            db_models.LearningSessions.teacher_id == current_user.id
        )
        students_count = await self._count(
            select(func.count(distinct(db_models.Children.id))).filter(or_(
                db_models.Children.teacher_id == current_user.id,
                db_models.Children.id.in_(taught_in_sessions),
            ))
        )
        pending_grading = await self._count(
            select(func.count(db_models.AssessmentSubmissions.id)).join(
                db_models.Assessments, db_models.Assessments.id == db_models.AssessmentSubmissions.assessment_id
            ).filter(
                db_models.Assessments.teacher_profile_id == profile.id,
                db_models.AssessmentSubmissions.status == SubmissionStatus.COMPLETED.value,
            )
        )
        upcoming = await self.session_service.upcoming_sessions(current_user, limit=UPCOMING_LIMIT)
        return dashboard_models.TeacherDashboard(
            courses_count=courses_count,
            students_count=students_count,
            upcoming_sessions=[session_models.SessionRead.model_validate(s) for s in upcoming],
            pending_grading=pending_grading,
            unread_notifications=await self.notification_service.unread_count(current_user),
        )

    async def client_dashboard(self, current_user: db_models.Users) -> dashboard_models.ClientDashboard:
        pivot = db_models.AssessmentClient
        base = select(func.count()).select_from(pivot).filter(pivot.client_profile_id == current_user.client_profile.id)
        return dashboard_models.ClientDashboard(
            assigned_assessments=await self._count(base),
            completed_assessments=await self._count(base.filter(pivot.status.in_(
                (SubmissionStatus.COMPLETED.value, SubmissionStatus.GRADED.value)
            ))),
            subscription=await self.billing_service.get_subscription(current_user),
            unread_notifications=await self.notification_service.unread_count(current_user),
        )

    async def admin_dashboard(self, current_user: db_models.Users) -> dashboard_models.AdminDashboard:
        rows = (await self.db.execute(
            select(db_models.Users.role, func.count(db_models.Users.id)).group_by(db_models.Users.role)
        )).all()
        users_by_role = {role: 0 for role in UserRole.get_all_names()}
        users_by_role.update({role: count for role, count in rows})

        s = db_models.LearningSessions
        total_sessions = await self._count(select(func.count(s.id)))
        scheduled_sessions = await self._count(select(func.count(s.id)).filter(s.status == SessionStatus.SCHEDULED.value))
        revenue = (await self.db.execute(
            select(func.coalesce(func.sum(db_models.Payments.amount), 0)).filter(
                db_models.Payments.status == PaymentStatus.COMPLETED.value
            )
        )).scalar_one()
        open_tickets = await self._count(
            select(func.count(db_models.SupportTickets.id)).filter(
                db_models.SupportTickets.status.in_((TicketStatus.OPEN.value, TicketStatus.IN_PROGRESS.value)),
                db_models.SupportTickets.deleted_at.is_(None),
            )
        )
        pending_teachers = await self._count(
            select(func.count(db_models.TeacherProfiles.id)).filter(
                db_models.TeacherProfiles.status != TeacherProfileStatus.VERIFIED.value
            )
        )
        return dashboard_models.AdminDashboard(
            users_by_role=users_by_role,
            total_sessions=total_sessions,
            scheduled_sessions=scheduled_sessions,
            revenue=Decimal(str(revenue)).quantize(Decimal("0.01")),
            open_tickets=open_tickets,
            pending_teachers=pending_teachers,
        )

    async def get_dashboard(self, current_user: db_models.Users) -> dashboard_models.DashboardRead:
        """The caller's own dashboard, picked by role."""
        dashboard = dashboard_models.DashboardRead(role=current_user.role)
        if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            dashboard.parent = await self.parent_dashboard(current_user)
        elif current_user.role == UserRole.TEACHER.value and current_user.teacher_profile:
            dashboard.teacher = await self.teacher_dashboard(current_user)
        elif current_user.role == UserRole.CLIENT.value and current_user.client_profile:
            dashboard.client = await self.client_dashboard(current_user)
        elif current_user.role == UserRole.ADMIN.value:
            dashboard.admin = await self.admin_dashboard(current_user)
        else:
            log.warning(f"User {current_user.id} has no profile for a {current_user.role} dashboard.")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No dashboard for this account.")
        return dashboard
