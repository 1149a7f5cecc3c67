'''
Homework set by teachers for the children they teach: listing with filters,
completion by parents, grading, submission attachments and the progress overview.
'''
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, UploadFile, status
from sqlalchemy import select, func, case, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, NotificationType, HomeworkStatusFilter
from ..models import homework as homework_models
from ..models.common import Page
from ..core.homework import completion_percentage
from ..core.date_ranges import resolve_date_range, local_day_bounds_utc, local_today
from ..core.scheduling import calendar_range, days_between, group_by_day, to_local
from ..common.config import settings
from ..common.time_utils import utcnow, as_utc
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .notification_service import NotificationService
from .children_service import ChildrenService
from .subject_service import SubjectService
from .uploads import store_upload, remove_stored_file

HOMEWORK_PER_PAGE = 10
TOP_SUBJECTS = 5


def homework_loaders():
    return (
        selectinload(db_models.Homework.child),
        selectinload(db_models.Homework.subject),
        selectinload(db_models.Homework.teacher),
        selectinload(db_models.Homework.attachments),
    )


class HomeworkService:
    """
    Service for homework.
    Teachers manage the homework they set, parents follow and complete their
    children's homework, admins see everything.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ):
        self.db = db
        self.notification_service = notification_service
        self.children_service = children_service
        self.subject_service = subject_service

    # --- Authorization Helpers ---

    @staticmethod
    def _is_admin(current_user: db_models.Users) -> bool:
        return current_user.role == UserRole.ADMIN.value

    @staticmethod
    def _owns_child(current_user: db_models.Users, child: db_models.Children) -> bool:
        return (
            current_user.role == UserRole.PARENT.value
            and current_user.parent_profile is not None
            and child.parent_profile_id == current_user.parent_profile.id
        )

    def _scope(self, stmt, current_user: db_models.Users):
        """Restricts a Homework query to what the caller may see."""
        if self._is_admin(current_user):
            return stmt
        if current_user.role == UserRole.TEACHER.value:
            return stmt.filter(db_models.Homework.teacher_id == current_user.id)
        if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            own_children = select(db_models.Children.id).filter(
                db_models.Children.parent_profile_id == current_user.parent_profile.id
            )
            return stmt.filter(db_models.Homework.children_id.in_(own_children))
        log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to read homework.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view homework."
        )

    def _authorize_read(self, homework: db_models.Homework, current_user: db_models.Users):
        if self._is_admin(current_user) or homework.teacher_id == current_user.id:
            return
        if self._owns_child(current_user, homework.child):
            return
        log.warning(f"SECURITY: User {current_user.id} tried to read homework {homework.id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this homework."
        )

    def _authorize_teacher(self, homework: db_models.Homework, current_user: db_models.Users):
        if self._is_admin(current_user) or homework.teacher_id == current_user.id:
            return
        log.warning(f"SECURITY: User {current_user.id} tried to manage homework {homework.id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the teacher who set this homework can change it."
        )

    # --- Internal Helpers ---

    async def _get_homework_internal(self, homework_id: UUID) -> db_models.Homework:
        stmt = select(db_models.Homework).options(*homework_loaders()).filter(
            db_models.Homework.id == homework_id
        ).execution_options(populate_existing=True)
        homework = (await self.db.execute(stmt)).scalars().first()
        if not homework:
            log.warning(f"Tried to fetch non-existing homework: {homework_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Homework not found.")
        return homework

    async def _parent_user_id(self, child: db_models.Children) -> UUID:
        stmt = select(db_models.ParentProfiles.user_id).filter(
            db_models.ParentProfiles.id == child.parent_profile_id
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def _check_subject(self, subject_id: Optional[UUID]):
        if subject_id is not None:
            await self.subject_service.get_subjects_by_ids([subject_id])

    async def _read(self, homework_id: UUID) -> homework_models.HomeworkRead:
        return homework_models.HomeworkRead.model_validate(await self._get_homework_internal(homework_id))

    def _apply_filters(self, stmt, filters: homework_models.HomeworkFilters, current_user: db_models.Users):
        h = db_models.Homework
        now = utcnow()
        if filters.child_id:
            stmt = stmt.filter(h.children_id == filters.child_id)
        if filters.subject_id:
            stmt = stmt.filter(h.subject_id == filters.subject_id)
        if filters.status == HomeworkStatusFilter.COMPLETED:
            stmt = stmt.filter(h.is_completed.is_(True))
        elif filters.status == HomeworkStatusFilter.PENDING:
            stmt = stmt.filter(h.is_completed.is_(False))
        elif filters.status == HomeworkStatusFilter.OVERDUE:
            stmt = stmt.filter(h.is_completed.is_(False), h.due_date < now)
        elif filters.status == HomeworkStatusFilter.UPCOMING:
            stmt = stmt.filter(h.is_completed.is_(False), h.due_date >= now)
        if filters.search:
            pattern = contains_pattern(filters.search)
            stmt = stmt.filter(func.lower(h.title).like(pattern, escape=LIKE_ESCAPE))
        if filters.date_range:
            first, last = resolve_date_range(filters.date_range, local_today(now, current_user.timezone))
            start, end = local_day_bounds_utc(first, last, current_user.timezone)
            stmt = stmt.filter(h.due_date >= start, h.due_date < end)
        return stmt

    # --- Teacher Methods ---

    async def create_homework(
        self,
        data: homework_models.HomeworkCreate,
        current_user: db_models.Users
    ) -> homework_models.HomeworkRead:
        child = await self.db.get(db_models.Children, data.children_id)
        if not child:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Child not found.")
        if not self._is_admin(current_user) and not await self.children_service.teaches_child(current_user.id, child.id):
            log.warning(f"SECURITY: Teacher {current_user.id} tried to set homework for child {child.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only set homework for children you teach."
            )
        due_date = as_utc(data.due_date)
        if due_date <= utcnow():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The due date must be in the future.")
        await self._check_subject(data.subject_id)

        try:
            homework = db_models.Homework(
                **data.model_dump(exclude={'due_date'}),
                due_date=due_date,
                teacher_id=current_user.id,
                is_completed=False,
            )
            self.db.add(homework)
            await self.db.flush()

            await self.notification_service.send_to_user(
                await self._parent_user_id(child),
                NotificationType.HOMEWORK,
                "New homework",
                f"{child.name} has new homework: {homework.title}.",
                action_text="View homework",
                action_url=f"/homework/{homework.id}",
                metadata={"homework_id": str(homework.id), "child_id": str(child.id)},
            )
            log.info(f"Teacher {current_user.id} set homework {homework.id} for child {child.id}.")
            return await self._read(homework.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating homework for child {data.children_id}: {e}", exc_info=True)
            raise

    async def update_homework(
        self,
        homework_id: UUID,
        data: homework_models.HomeworkUpdate,
        current_user: db_models.Users
    ) -> homework_models.HomeworkRead:
        homework = await self._get_homework_internal(homework_id)
        self._authorize_teacher(homework, current_user)
        changes = data.model_dump(exclude_unset=True)
        if 'subject_id' in changes:
            await self._check_subject(changes['subject_id'])
        if changes.get('due_date') is not None:
            changes['due_date'] = as_utc(changes['due_date'])

        max_score = changes.get('max_score', homework.max_score)
        if homework.achieved_score is not None and max_score is not None and homework.achieved_score > max_score:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The maximum score cannot be lower than the score already given."
            )

        try:
            for key, value in changes.items():
                setattr(homework, key, value)
            await self.db.flush()
            log.info(f"User {current_user.id} updated homework {homework.id}.")
            return await self._read(homework.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating homework {homework_id}: {e}", exc_info=True)
            raise

    async def delete_homework(self, homework_id: UUID, current_user: db_models.Users) -> None:
        homework = await self._get_homework_internal(homework_id)
        self._authorize_teacher(homework, current_user)
        paths = [attachment.file_path for attachment in homework.attachments]
        await self.db.delete(homework)
        await self.db.flush()
        for path in paths:
            await remove_stored_file(path)
        log.info(f"User {current_user.id} deleted homework {homework_id}.")

    async def grade_homework(
        self,
        homework_id: UUID,
        data: homework_models.HomeworkGrade,
        current_user: db_models.Users
    ) -> homework_models.HomeworkRead:
        homework = await self._get_homework_internal(homework_id)
        self._authorize_teacher(homework, current_user)
        if homework.max_score is not None and data.achieved_score > homework.max_score:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"The score cannot be higher than {homework.max_score}."
            )

        try:
            homework.achieved_score = data.achieved_score
            homework.teacher_feedback = data.teacher_feedback
            homework.graded_at = utcnow()
            await self.db.flush()

            score = f"{data.achieved_score}/{homework.max_score}" if homework.max_score else str(data.achieved_score)
            await self.notification_service.send_to_user(
                await self._parent_user_id(homework.child),
                NotificationType.HOMEWORK,
                "Homework graded",
                f"{homework.child.name} scored {score} on {homework.title}.",
                action_text="View feedback",
                action_url=f"/homework/{homework.id}",
                metadata={"homework_id": str(homework.id), "score": data.achieved_score},
            )
            log.info(f"User {current_user.id} graded homework {homework.id}: {score}.")
            return await self._read(homework.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error grading homework {homework_id}: {e}", exc_info=True)
            raise

    # --- Reading ---

    async def list_homework(
        self,
        current_user: db_models.Users,
        filters: homework_models.HomeworkFilters
    ) -> Page[homework_models.HomeworkRead]:
        h = db_models.Homework
        stmt = self._scope(select(h).options(*homework_loaders()), current_user)
        stmt = self._apply_filters(stmt, filters, current_user)
        column = getattr(h, filters.sort_field)
        stmt = stmt.order_by(column.asc() if filters.sort_direction == 'asc' else column.desc(), h.id)
        return await paginate(self.db, stmt, filters.page, homework_models.HomeworkRead, per_page=HOMEWORK_PER_PAGE)

    async def get_homework(self, homework_id: UUID, current_user: db_models.Users) -> homework_models.HomeworkRead:
        homework = await self._get_homework_internal(homework_id)
        self._authorize_read(homework, current_user)
        return homework_models.HomeworkRead.model_validate(homework)

    async def get_progress(
        self,
        current_user: db_models.Users,
        child_id: Optional[UUID] = None
    ) -> homework_models.HomeworkProgress:
        h = db_models.Homework
        now = utcnow()
        stmt = select(
            func.count(h.id),
            func.sum(case((h.is_completed.is_(True), 1), else_=0)),
            func.sum(case((and_(h.is_completed.is_(False), h.due_date < now), 1), else_=0)),
        ).select_from(h)
        stmt = self._scope(stmt, current_user)
        if child_id:
            stmt = stmt.filter(h.children_id == child_id)
        total, completed, overdue = (await self.db.execute(stmt)).one()
        total, completed, overdue = total or 0, completed or 0, overdue or 0
        return homework_models.HomeworkProgress(
            total=total,
            completed=completed,
            pending=total - completed,
            overdue=overdue,
            percentage=completion_percentage(total, completed),
        )

    async def get_subject_stats(
        self,
        current_user: db_models.Users,
        child_id: Optional[UUID] = None
    ) -> list[homework_models.SubjectHomeworkStats]:
        """The subjects with the most homework and how much of it is done."""
        h, s = db_models.Homework, db_models.Subjects
        total = func.count(h.id)
        stmt = select(
            s.id, s.name, total, func.sum(case((h.is_completed.is_(True), 1), else_=0))
        ).select_from(h).join(s, s.id == h.subject_id)
        stmt = self._scope(stmt, current_user)
        if child_id:
            stmt = stmt.filter(h.children_id == child_id)
        stmt = stmt.group_by(s.id, s.name).order_by(total.desc(), s.name).limit(TOP_SUBJECTS)

        return [
            homework_models.SubjectHomeworkStats(
                subject_id=subject_id,
                subject_name=name,
                total=count,
                completed=done or 0,
                percentage=completion_percentage(count, done or 0),
            )
            for subject_id, name, count, done in (await self.db.execute(stmt)).all()
        ]

    async def get_week(
        self,
        current_user: db_models.Users,
        child_id: Optional[UUID] = None,
        anchor: Optional[datetime] = None
    ) -> homework_models.WeeklyHomework:
        """Homework due Monday to Sunday of the anchor's week, keyed by local day."""
        today = local_today(anchor or utcnow(), current_user.timezone)
        first, last = calendar_range("week", today)
        start, end = local_day_bounds_utc(first, last, current_user.timezone)

        h = db_models.Homework
        stmt = self._scope(select(h).options(*homework_loaders()), current_user).filter(
            h.due_date >= start, h.due_date < end
        )
        if child_id:
            stmt = stmt.filter(h.children_id == child_id)
        homework = (await self.db.execute(stmt.order_by(h.due_date.asc()))).scalars().all()

        grouped = group_by_day(homework, lambda item: to_local(as_utc(item.due_date), current_user.timezone).date())
        return homework_models.WeeklyHomework(
            start_date=first,
            end_date=last,
            days=[
                homework_models.HomeworkDay(
                    date=day,
                    homework=[homework_models.HomeworkRead.model_validate(item) for item in grouped.get(day, [])],
                )
                for day in days_between(first, last)
            ],
        )

    async def get_overview(
        self,
        current_user: db_models.Users,
        child_id: Optional[UUID] = None
    ) -> homework_models.HomeworkOverview:
        return homework_models.HomeworkOverview(
            progress=await self.get_progress(current_user, child_id),
            subjects=await self.get_subject_stats(current_user, child_id),
            week=await self.get_week(current_user, child_id),
        )

    # --- Parent Methods ---

    async def toggle_completion(self, homework_id: UUID, current_user: db_models.Users) -> homework_models.HomeworkRead:
        homework = await self._get_homework_internal(homework_id)
        if not self._owns_child(current_user, homework.child) and not self._is_admin(current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the child's parent can mark homework as done."
            )
        homework.is_completed = not homework.is_completed
        homework.completed_at = utcnow() if homework.is_completed else None
        await self.db.flush()
        log.info(f"User {current_user.id} set homework {homework.id} completed={homework.is_completed}.")
        return await self._read(homework.id)

    # --- Attachments ---

    async def add_attachment(
        self,
        homework_id: UUID,
        upload: UploadFile,
        current_user: db_models.Users
    ) -> homework_models.HomeworkAttachmentRead:
        homework = await self._get_homework_internal(homework_id)
        self._authorize_read(homework, current_user)
        try:
            stored = await store_upload(upload, f"homework/{homework.id}", settings.MAX_HOMEWORK_UPLOAD_SIZE)
            attachment = db_models.HomeworkAttachments(
                homework_id=homework.id,
                user_id=current_user.id,
                **stored._asdict(),
            )
            self.db.add(attachment)
            await self.db.flush()
            log.info(f"User {current_user.id} attached {stored.file_name} to homework {homework.id}.")
            return homework_models.HomeworkAttachmentRead.model_validate(attachment)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error storing attachment for homework {homework_id}: {e}", exc_info=True)
            raise

    async def delete_attachment(
        self,
        homework_id: UUID,
        attachment_id: UUID,
        current_user: db_models.Users
    ) -> None:
        attachment = await self.db.get(db_models.HomeworkAttachments, attachment_id)
        if not attachment or attachment.homework_id != homework_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found.")
        if attachment.user_id != current_user.id and not self._is_admin(current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the uploader can remove this attachment."
            )
        file_path = attachment.file_path
        await self.db.delete(attachment)
        await self.db.flush()
        await remove_stored_file(file_path)
        log.info(f"User {current_user.id} removed attachment {attachment_id} from homework {homework_id}.")
