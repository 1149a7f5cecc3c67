'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import children as children_models
from ..common.logger import log
from .subject_service import SubjectService


class ChildrenService:
    """
    Service for children owned by parent profiles.
    Parents manage their own children; teachers can read the children they teach.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ):
        self.db = db
        self.subject_service = subject_service

    # --- Authorization Helpers ---

    def _parent_profile_of(self, current_user: db_models.Users) -> db_models.ParentProfiles:
        if current_user.role != UserRole.PARENT.value or current_user.parent_profile is None:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to manage children.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only parents can manage children."
            )
        return current_user.parent_profile

    def teaches_clause(self, teacher_id: UUID):
        """Children assigned to the teacher or with at least one session with them."""
        has_session = exists().where(
            db_models.LearningSessions.children_id == db_models.Children.id,
            db_models.LearningSessions.teacher_id == teacher_id,
        )
        return or_(db_models.Children.teacher_id == teacher_id, has_session)

    async def teaches_child(self, teacher_id: UUID, child_id: UUID) -> bool:
        stmt = select(db_models.Children.id).filter(
            db_models.Children.id == child_id, self.teaches_clause(teacher_id)
        )
        return (await self.db.execute(stmt)).first() is not None

    async def _authorize_read_access(self, child: db_models.Children, current_user: db_models.Users):
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.PARENT.value:
            if current_user.parent_profile and child.parent_profile_id == current_user.parent_profile.id:
                return
        elif current_user.role == UserRole.TEACHER.value:
            if await self.teaches_child(current_user.id, child.id):
                return

        log.warning(f"SECURITY: User {current_user.id} tried to read child {child.id} without permission.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this child."
        )

    def _authorize_write_access(self, child: db_models.Children, current_user: db_models.Users):
        if current_user.role == UserRole.ADMIN.value:
            return
        profile = self._parent_profile_of(current_user)
        if child.parent_profile_id != profile.id:
            log.warning(f"SECURITY: User {current_user.id} tried to modify child {child.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this child."
            )

    # --- Internal Fetcher ---

    async def _get_child_internal(self, child_id: UUID) -> db_models.Children:
        stmt = select(db_models.Children).options(
            selectinload(db_models.Children.subjects)
        ).filter(db_models.Children.id == child_id).execution_options(populate_existing=True)
        child = (await self.db.execute(stmt)).scalars().first()
        if not child:
            log.warning(f"Tried to fetch non-existing child: {child_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Child not found.")
        return child

    async def _check_teacher(self, teacher_id: UUID):
        teacher = await self.db.get(db_models.Users, teacher_id)
        if not teacher or teacher.role != UserRole.TEACHER.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected teacher does not exist.")

    async def build_child(
        self,
        parent_profile: db_models.ParentProfiles,
        child_data: children_models.ChildCreate
    ) -> db_models.Children:
        """
        Creates (but does not flush) a child row with its subjects.
        Shared with the parent profile wizard.
        """
        subjects = await self.subject_service.get_subjects_by_ids(child_data.subject_ids)
        child = db_models.Children(
            parent_profile_id=parent_profile.id,
            subjects=subjects,
            **child_data.model_dump(exclude={'subject_ids', 'available_times', 'gender'}),
            gender=child_data.gender.value,
            available_times=[slot.value for slot in child_data.available_times],
        )
        self.db.add(child)
        return child

    # --- Public Methods (API-Facing) ---

    async def list_children_for_api(self, current_user: db_models.Users) -> list[children_models.ChildRead]:
        stmt = select(db_models.Children).options(selectinload(db_models.Children.subjects))
        if current_user.role == UserRole.PARENT.value:
            profile = self._parent_profile_of(current_user)
            stmt = stmt.filter(db_models.Children.parent_profile_id == profile.id)
        elif current_user.role == UserRole.TEACHER.value:
            stmt = stmt.filter(self.teaches_clause(current_user.id))
        elif current_user.role != UserRole.ADMIN.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view children."
            )
        result = await self.db.execute(stmt.order_by(db_models.Children.name))
        return [children_models.ChildRead.model_validate(c) for c in result.scalars().all()]

    async def get_child_for_api(self, child_id: UUID, current_user: db_models.Users) -> children_models.ChildRead:
        child = await self._get_child_internal(child_id)
        await self._authorize_read_access(child, current_user)
        return children_models.ChildRead.model_validate(child)

    async def create_child(
        self,
        child_data: children_models.ChildCreate,
        current_user: db_models.Users
    ) -> children_models.ChildRead:
        profile = self._parent_profile_of(current_user)
        try:
            child = await self.build_child(profile, child_data)
            await self.db.flush()
            log.info(f"Parent {current_user.id} added child {child.id}.")
            return children_models.ChildRead.model_validate(await self._get_child_internal(child.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating child for parent {current_user.id}: {e}", exc_info=True)
            raise

    async def update_child(
        self,
        child_id: UUID,
        update_data: children_models.ChildUpdate,
        current_user: db_models.Users
    ) -> children_models.ChildRead:
        try:
            child = await self._get_child_internal(child_id)
            self._authorize_write_access(child, current_user)

            update_dict = update_data.model_dump(exclude_unset=True)
            if 'subject_ids' in update_dict:
                child.subjects = await self.subject_service.get_subjects_by_ids(update_dict.pop('subject_ids'))
            if update_dict.get('teacher_id') is not None:
                await self._check_teacher(update_dict['teacher_id'])
            if 'available_times' in update_dict:
                update_dict['available_times'] = [slot.value for slot in update_data.available_times]
            if 'gender' in update_dict:
                update_dict['gender'] = update_data.gender.value

            for key, value in update_dict.items():
                setattr(child, key, value)
            if child.age is None and child.date_of_birth is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Either an age or a date of birth is required."
                )

            await self.db.flush()
            log.info(f"User {current_user.id} updated child {child_id}.")
            return children_models.ChildRead.model_validate(await self._get_child_internal(child_id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating child {child_id}: {e}", exc_info=True)
            raise

    async def delete_child(self, child_id: UUID, current_user: db_models.Users) -> None:
        try:
            child = await self._get_child_internal(child_id)
            self._authorize_write_access(child, current_user)
            await self.db.delete(child)
            await self.db.flush()
            log.info(f"User {current_user.id} deleted child {child_id}.")
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error deleting child {child_id}: {e}", exc_info=True)
            raise
