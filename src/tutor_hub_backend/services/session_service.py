'''
Learning sessions: booking with availability and conflict checks, the
session lifecycle (cancel / complete), listing, stats and calendar views.
'''
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func, or_, and_, distinct
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, SessionStatus, NotificationType
from ..models import sessions as session_models
from ..models.common import Page
from ..core.scheduling import (
    MAX_SESSION_DURATION, fits_availability, to_local, calendar_range, days_between, group_by_day
)
from ..core.date_ranges import local_day_bounds_utc, local_today
from ..common.time_utils import utcnow, as_utc
from ..common.logger import log
from .pagination import paginate
from .notification_service import NotificationService

CONFLICT_MESSAGE = "Time slot conflicts with existing session"


def session_loaders():
    return (
        selectinload(db_models.LearningSessions.teacher),
        selectinload(db_models.LearningSessions.child),
        selectinload(db_models.LearningSessions.subject),
    )


class SessionService:
    """
    Service for all business logic related to learning sessions.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        self.db = db
        self.notification_service = notification_service

    # --- Authorization Helpers ---

    def _scope(self, stmt, current_user: db_models.Users):
        """Restricts a LearningSessions query to what the caller may see."""
        if current_user.role == UserRole.ADMIN.value:
            return stmt
        if current_user.role == UserRole.TEACHER.value:
            return stmt.filter(db_models.LearningSessions.teacher_id == current_user.id)
        if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            own_children = select(db_models.Children.id).filter(
                db_models.Children.parent_profile_id == current_user.parent_profile.id
            )
            return stmt.filter(db_models.LearningSessions.children_id.in_(own_children))
        log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to read sessions.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view sessions."
        )

    async def _teaches_child(self, teacher_id: UUID, child: db_models.Children) -> bool:
        if child.teacher_id == teacher_id:
            return True
        stmt = select(db_models.LearningSessions.id).filter(
            db_models.LearningSessions.children_id == child.id,
            db_models.LearningSessions.teacher_id == teacher_id,
        ).limit(1)
        return (await self.db.execute(stmt)).first() is not None

    async def _authorize_booking(
        self,
        child: db_models.Children,
        teacher_id: UUID,
        current_user: db_models.Users
    ):
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.PARENT.value:
            if current_user.parent_profile and child.parent_profile_id == current_user.parent_profile.id:
                return
        elif current_user.role == UserRole.TEACHER.value:
            if teacher_id == current_user.id and await self._teaches_child(current_user.id, child):
                return
        log.warning(f"SECURITY: User {current_user.id} tried to book a session for child {child.id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to schedule sessions for this child."
        )

    async def _authorize_session_write(self, session: db_models.LearningSessions, current_user: db_models.Users, allow_parent: bool):
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.TEACHER.value and session.teacher_id == current_user.id:
            return
        if allow_parent and current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            if session.child.parent_profile_id == current_user.parent_profile.id:
                return
        log.warning(f"SECURITY: User {current_user.id} tried to modify session {session.id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to modify this session."
        )

    # --- Internal Helpers ---

    async def _get_session_internal(self, session_id: UUID) -> db_models.LearningSessions:
        stmt = select(db_models.LearningSessions).options(*session_loaders()).filter(
            db_models.LearningSessions.id == session_id
        ).execution_options(populate_existing=True)
        session = (await self.db.execute(stmt)).scalars().first()
        if not session:
            log.warning(f"Tried to fetch non-existing session: {session_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
        return session

    async def _parent_of_child(self, child: db_models.Children) -> tuple[UUID, str]:
        """The parent's user id and timezone."""
        stmt = select(db_models.Users.id, db_models.Users.timezone).join(
            db_models.ParentProfiles, db_models.ParentProfiles.user_id == db_models.Users.id
        ).filter(db_models.ParentProfiles.id == child.parent_profile_id)
        parent_id, timezone = (await self.db.execute(stmt)).one()
        return parent_id, timezone

    async def _lock_child(self, child_id: UUID) -> db_models.Children:
        stmt = select(db_models.Children).filter(db_models.Children.id == child_id).with_for_update()
        child = (await self.db.execute(stmt)).scalars().first()
        if not child:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Child not found.")
        return child

    async def _lock_teacher(self, teacher_id: UUID) -> db_models.Users:
        stmt = select(db_models.Users).filter(db_models.Users.id == teacher_id).with_for_update()
        teacher = (await self.db.execute(stmt)).scalars().first()
        if not teacher or teacher.role != UserRole.TEACHER.value or not teacher.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected teacher does not exist.")
        return teacher

    async def _check_references(self, data: session_models.SessionCreate):
        subject = await self.db.get(db_models.Subjects, data.subject_id)
        if not subject or not subject.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected subject does not exist.")
        if data.course_id:
            stmt = select(db_models.Courses.id).join(
                db_models.TeacherProfiles, db_models.TeacherProfiles.id == db_models.Courses.teacher_profile_id
            ).filter(db_models.Courses.id == data.course_id, db_models.TeacherProfiles.user_id == data.teacher_id)
            if (await self.db.execute(stmt)).first() is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected course does not belong to this teacher.")

    async def has_conflict(
        self,
        children_id: UUID,
        teacher_id: UUID,
        start,
        end,
        exclude_session_id: UUID | None = None
    ) -> bool:
        """
        Any non-cancelled session of the same child or the same teacher that
        overlaps [start, end). Touching sessions do not conflict.
        """
        stmt = select(db_models.LearningSessions.id).filter(
            db_models.LearningSessions.status != SessionStatus.CANCELLED.value,
            or_(
                db_models.LearningSessions.children_id == children_id,
                db_models.LearningSessions.teacher_id == teacher_id,
            ),
            db_models.LearningSessions.start_time < end,
            db_models.LearningSessions.end_time > start,
        )
        if exclude_session_id:
            stmt = stmt.filter(db_models.LearningSessions.id != exclude_session_id)
        return (await self.db.execute(stmt.limit(1))).first() is not None

    # --- Booking ---

    async def schedule_session(
        self,
        data: session_models.SessionCreate,
        current_user: db_models.Users
    ) -> session_models.SessionRead:
        log.info(f"User {current_user.id} scheduling a session for child {data.children_id}.")
        try:
            # Rows are locked first so two bookings for the same child or teacher queue up
            child = await self._lock_child(data.children_id)
            await self._authorize_booking(child, data.teacher_id, current_user)
            await self._lock_teacher(data.teacher_id)
            await self._check_references(data)

            start, end = as_utc(data.start_time), as_utc(data.end_time)
            if start <= utcnow():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sessions must start in the future.")
            if end - start > MAX_SESSION_DURATION:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sessions cannot be longer than 4 hours.")

            parent_id, parent_timezone = await self._parent_of_child(child)
            if not fits_availability(child.available_times, to_local(start, parent_timezone), to_local(end, parent_timezone)):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="The session is outside the child's available times."
                )

            if await self.has_conflict(child.id, data.teacher_id, start, end):
                log.info(f"Booking for child {child.id} rejected: {start} - {end} overlaps another session.")
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_MESSAGE)

            session = db_models.LearningSessions(
                **data.model_dump(exclude={'start_time', 'end_time'}),
                start_time=start,
                end_time=end,
                status=SessionStatus.SCHEDULED.value,
            )
            self.db.add(session)
            await self.db.flush()

            local_start = to_local(start, parent_timezone)
            await self.notification_service.send_to_user(
                parent_id,
                NotificationType.SCHEDULE,
                "New session scheduled",
                f"A session for {child.name} is scheduled on {local_start:%Y-%m-%d at %H:%M}.",
                action_text="View schedule",
                action_url="/parents/schedule",
                metadata={"session_id": str(session.id)},
            )
            log.info(f"Session {session.id} scheduled for child {child.id} with teacher {data.teacher_id}.")
            return session_models.SessionRead.model_validate(await self._get_session_internal(session.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error scheduling session for child {data.children_id}: {e}", exc_info=True)
            raise

    async def cancel_session(self, session_id: UUID, current_user: db_models.Users) -> session_models.SessionRead:
        try:
            session = await self._get_session_internal(session_id)
            await self._authorize_session_write(session, current_user, allow_parent=True)
            if session.status != SessionStatus.SCHEDULED.value:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only scheduled sessions can be cancelled.")

            session.status = SessionStatus.CANCELLED.value
            await self.db.flush()

            parent_id, _ = await self._parent_of_child(session.child)
            await self.notification_service.send_to_user(
                parent_id,
                NotificationType.SCHEDULE,
                "Session cancelled",
                f"The {session.subject.name} session for {session.child.name} was cancelled.",
                metadata={"session_id": str(session.id)},
            )
            log.info(f"User {current_user.id} cancelled session {session_id}.")
            return session_models.SessionRead.model_validate(await self._get_session_internal(session_id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error cancelling session {session_id}: {e}", exc_info=True)
            raise

    async def complete_session(
        self,
        session_id: UUID,
        data: session_models.SessionComplete,
        current_user: db_models.Users
    ) -> session_models.SessionRead:
        try:
            session = await self._get_session_internal(session_id)
            await self._authorize_session_write(session, current_user, allow_parent=False)
            if session.status != SessionStatus.SCHEDULED.value:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only scheduled sessions can be completed.")

            session.status = SessionStatus.COMPLETED.value
            values = data.model_dump(exclude_unset=True)
            values.setdefault("attended", data.attended)
            for key, value in values.items():
                setattr(session, key, value)

            end_time = as_utc(session.end_time)
            last = as_utc(session.child.last_session_at)
            if last is None or end_time > last:
                session.child.last_session_at = end_time
            await self.db.flush()

            parent_id, _ = await self._parent_of_child(session.child)
            await self.notification_service.send_to_user(
                parent_id,
                NotificationType.ATTENDANCE,
                "Session completed",
                f"{session.child.name} {'attended' if data.attended else 'missed'} the {session.subject.name} session.",
                metadata={"session_id": str(session.id), "performance_score": data.performance_score},
            )
            log.info(f"User {current_user.id} completed session {session_id}.")
            return session_models.SessionRead.model_validate(await self._get_session_internal(session_id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error completing session {session_id}: {e}", exc_info=True)
            raise

    # --- Reads ---

    async def get_session_for_api(self, session_id: UUID, current_user: db_models.Users) -> session_models.SessionRead:
        stmt = self._scope(
            select(db_models.LearningSessions).options(*session_loaders()), current_user
        ).filter(db_models.LearningSessions.id == session_id)
        session = (await self.db.execute(stmt)).scalars().first()
        if not session:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
        return session_models.SessionRead.model_validate(session)

    async def list_sessions(
        self,
        current_user: db_models.Users,
        filters: session_models.SessionFilters
    ) -> Page[session_models.SessionRead]:
        stmt = self._scope(select(db_models.LearningSessions).options(*session_loaders()), current_user)
        s = db_models.LearningSessions

        if filters.status:
            stmt = stmt.filter(s.status == filters.status.value)
        if filters.subject_id:
            stmt = stmt.filter(s.subject_id == filters.subject_id)
        if filters.teacher_id:
            stmt = stmt.filter(s.teacher_id == filters.teacher_id)
        if filters.children_id:
            stmt = stmt.filter(s.children_id == filters.children_id)
        if filters.attended is not None:
            stmt = stmt.filter(s.attended == filters.attended)
        if filters.date_from:
            start, _ = local_day_bounds_utc(filters.date_from, filters.date_from, current_user.timezone)
            stmt = stmt.filter(s.start_time >= start)
        if filters.date_to:
            _, end = local_day_bounds_utc(filters.date_to, filters.date_to, current_user.timezone)
            stmt = stmt.filter(s.start_time < end)

        column = getattr(s, filters.sort_field)
        stmt = stmt.order_by(column.asc() if filters.sort_direction == 'asc' else column.desc(), s.id)
        return await paginate(self.db, stmt, filters.page, session_models.SessionRead)

    async def get_stats(
        self,
        current_user: db_models.Users,
        children_id: Optional[UUID] = None
    ) -> session_models.SessionStats:
        s = db_models.LearningSessions
        base = self._scope(select(s.id), current_user)
        if children_id:
            base = base.filter(s.children_id == children_id)
        scoped_ids = base.subquery()

        stmt = select(
            func.count(s.id),
            func.count(s.id).filter(and_(s.status == SessionStatus.COMPLETED.value, s.attended.is_(True))),
            func.count(s.id).filter(and_(s.status == SessionStatus.SCHEDULED.value, s.start_time > utcnow())),
            func.count(distinct(s.subject_id)),
            func.avg(s.performance_score),
        ).filter(s.id.in_(select(scoped_ids.c.id)))
        total, completed, upcoming, subjects, average = (await self.db.execute(stmt)).one()

        if average is not None:
            average = Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return session_models.SessionStats(
            total_sessions=total,
            completed_sessions=completed,
            upcoming_sessions=upcoming,
            total_subjects=subjects,
            average_performance=average,
        )

    async def upcoming_sessions(
        self,
        current_user: db_models.Users,
        limit: int = 10
    ) -> list[db_models.LearningSessions]:
        s = db_models.LearningSessions
        stmt = self._scope(select(s).options(*session_loaders()), current_user).filter(
            s.status == SessionStatus.SCHEDULED.value, s.start_time > utcnow()
        ).order_by(s.start_time.asc()).limit(limit)
        return list((await self.db.execute(stmt)).scalars().all())

    async def get_calendar(
        self,
        current_user: db_models.Users,
        view: str = "week",
        anchor: Optional[date] = None
    ) -> session_models.CalendarView:
        """
        Sessions in the day/week/month around `anchor`, grouped by the
        caller's local date. Every day of the range is present, even if empty.
        """
        anchor = anchor or local_today(utcnow(), current_user.timezone)
        first, last = calendar_range(view, anchor)
        start, end = local_day_bounds_utc(first, last, current_user.timezone)

        s = db_models.LearningSessions
        stmt = self._scope(select(s).options(*session_loaders()), current_user).filter(
            s.start_time >= start, s.start_time < end
        ).order_by(s.start_time.asc())
        sessions = (await self.db.execute(stmt)).scalars().all()

        grouped = group_by_day(
            sessions, key=lambda item: to_local(as_utc(item.start_time), current_user.timezone).date()
        )
        days = [
            session_models.CalendarDay(
                date=day,
                sessions=[session_models.SessionRead.model_validate(item) for item in grouped.get(day, [])],
            )
            for day in days_between(first, last)
        ]
        return session_models.CalendarView(view=view, start_date=first, end_date=last, days=days)
