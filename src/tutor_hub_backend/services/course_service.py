'''

'''
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, CourseStatus
from ..models import course as course_models
from ..models.common import Page
from ..core.references import slugify
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .subject_service import SubjectService


class CourseService:
    """
    Service for courses. Teachers own and manage their courses; everyone else
    browses active ones.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ):
        self.db = db
        self.subject_service = subject_service

    # --- Authorization Helpers ---

    def _teacher_profile_of(self, current_user: db_models.Users) -> db_models.TeacherProfiles:
        if current_user.role != UserRole.TEACHER.value or current_user.teacher_profile is None:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to manage courses.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only teachers can manage courses."
            )
        return current_user.teacher_profile

    def _authorize_read_access(self, course: db_models.Courses, current_user: db_models.Users):
        if course.status == CourseStatus.ACTIVE.value or current_user.role == UserRole.ADMIN.value:
            return
        profile = current_user.teacher_profile
        if profile is not None and course.teacher_profile_id == profile.id:
            return
        # Hidden courses look missing to everyone but their owner
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")

    def _authorize_write_access(self, course: db_models.Courses, current_user: db_models.Users):
        profile = self._teacher_profile_of(current_user)
        if course.teacher_profile_id != profile.id:
            log.warning(f"SECURITY: User {current_user.id} tried to modify course {course.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this course."
            )

    # --- Internal Helpers ---

    async def _get_course_internal(self, course_id: UUID) -> db_models.Courses:
        stmt = select(db_models.Courses).options(
            selectinload(db_models.Courses.subject)
        ).filter(db_models.Courses.id == course_id).execution_options(populate_existing=True)
        course = (await self.db.execute(stmt)).scalars().first()
        if not course:
            log.warning(f"Tried to fetch non-existing course: {course_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found.")
        return course

    async def _unique_slug(self, name: str, exclude_id: UUID | None = None) -> str:
        """Slug from the name; '-2', '-3', ... appended while it is taken."""
        base = slugify(name)
        stmt = select(db_models.Courses.slug).filter(
            or_(db_models.Courses.slug == base, db_models.Courses.slug.like(f"{base}-%"))
        )
        if exclude_id:
            stmt = stmt.filter(db_models.Courses.id != exclude_id)
        taken = set((await self.db.execute(stmt)).scalars().all())
        if base not in taken:
            return base
        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    # --- Public Methods (API-Facing) ---

    async def list_courses_for_api(
        self,
        current_user: db_models.Users,
        subject_id: Optional[UUID] = None,
        search: Optional[str] = None,
        status_filter: Optional[CourseStatus] = None,
        page: int = 1,
    ) -> Page[course_models.CourseRead]:
        stmt = select(db_models.Courses).options(selectinload(db_models.Courses.subject))
        if current_user.role == UserRole.TEACHER.value:
            profile = self._teacher_profile_of(current_user)
            stmt = stmt.filter(db_models.Courses.teacher_profile_id == profile.id)
            if status_filter:
                stmt = stmt.filter(db_models.Courses.status == status_filter.value)
        elif current_user.role == UserRole.ADMIN.value:
            if status_filter:
                stmt = stmt.filter(db_models.Courses.status == status_filter.value)
        else:
            stmt = stmt.filter(db_models.Courses.status == CourseStatus.ACTIVE.value)

        if subject_id:
            stmt = stmt.filter(db_models.Courses.subject_id == subject_id)
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.filter(or_(
                func.lower(db_models.Courses.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(db_models.Courses.description).like(pattern, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.order_by(db_models.Courses.created_at.desc())
        return await paginate(self.db, stmt, page, course_models.CourseRead)

    async def get_course_for_api(self, course_id: UUID, current_user: db_models.Users) -> course_models.CourseRead:
        course = await self._get_course_internal(course_id)
        self._authorize_read_access(course, current_user)
        return course_models.CourseRead.model_validate(course)

    async def create_course(
        self,
        course_data: course_models.CourseCreate,
        current_user: db_models.Users
    ) -> course_models.CourseRead:
        profile = self._teacher_profile_of(current_user)
        try:
            await self.subject_service.get_subjects_by_ids([course_data.subject_id])
            course = db_models.Courses(
                teacher_profile_id=profile.id,
                slug=await self._unique_slug(course_data.name),
                **course_data.model_dump(exclude={'status'}),
                status=course_data.status.value,
            )
            self.db.add(course)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} created course {course.id} ({course.slug}).")
            return course_models.CourseRead.model_validate(await self._get_course_internal(course.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating course for teacher {current_user.id}: {e}", exc_info=True)
            raise

    async def update_course(
        self,
        course_id: UUID,
        update_data: course_models.CourseUpdate,
        current_user: db_models.Users
    ) -> course_models.CourseRead:
        try:
            course = await self._get_course_internal(course_id)
            self._authorize_write_access(course, current_user)
            update_dict = update_data.model_dump(exclude_unset=True)

            if 'subject_id' in update_dict:
                await self.subject_service.get_subjects_by_ids([update_dict['subject_id']])
            if 'name' in update_dict and update_dict['name'] != course.name:
                update_dict['slug'] = await self._unique_slug(update_dict['name'], exclude_id=course.id)
            if 'status' in update_dict:
                update_dict['status'] = update_data.status.value

            for key, value in update_dict.items():
                setattr(course, key, value)
            if course.start_date and course.end_date and course.end_date < course.start_date:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="The end date must not be before the start date."
                )

            await self.db.flush()
            log.info(f"Teacher {current_user.id} updated course {course_id}.")
            return course_models.CourseRead.model_validate(await self._get_course_internal(course_id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating course {course_id}: {e}", exc_info=True)
            raise

    async def delete_course(self, course_id: UUID, current_user: db_models.Users) -> None:
        try:
            course = await self._get_course_internal(course_id)
            self._authorize_write_access(course, current_user)
            await self.db.delete(course)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} deleted course {course_id}.")
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error deleting course {course_id}: {e}", exc_info=True)
            raise
