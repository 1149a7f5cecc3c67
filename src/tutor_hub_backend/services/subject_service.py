from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import subject as subject_models
from ..common.logger import log


class SubjectService:
    """
    Subjects catalogue. Everyone can read active subjects; admins manage them.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    def _authorize_write(self, current_user: db_models.Users):
        if current_user.role != UserRole.ADMIN.value:
            log.warning(f"User {current_user.id} (role {current_user.role}) tried to manage subjects.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can manage subjects."
            )

    async def _get_subject_internal(self, subject_id: UUID) -> db_models.Subjects:
        subject = await self.db.get(db_models.Subjects, subject_id)
        if not subject:
            log.warning(f"Tried to fetch non-existing subject: {subject_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found.")
        return subject

    async def _check_name_free(self, name: str, exclude_id: UUID | None = None):
        stmt = select(db_models.Subjects.id).filter(func.lower(db_models.Subjects.name) == name.lower())
        if exclude_id:
            stmt = stmt.filter(db_models.Subjects.id != exclude_id)
        if (await self.db.execute(stmt)).first() is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A subject with this name already exists.")

    async def get_subjects_by_ids(self, subject_ids: list[UUID]) -> list[db_models.Subjects]:
        """
        Loads active subjects by id. Raises 400 when any of them is missing.
        """
        unique_ids = list(dict.fromkeys(subject_ids))
        if not unique_ids:
            return []
        result = await self.db.execute(
            select(db_models.Subjects).filter(
                db_models.Subjects.id.in_(unique_ids), db_models.Subjects.is_active.is_(True)
            )
        )
        subjects = list(result.scalars().all())
        if len(subjects) != len(unique_ids):
            missing = set(unique_ids) - {s.id for s in subjects}
            log.warning(f"Unknown or inactive subjects requested: {missing}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="One or more subjects do not exist.")
        return subjects

    async def list_subjects_for_api(self, current_user: db_models.Users | None = None) -> list[subject_models.SubjectRead]:
        stmt = select(db_models.Subjects).order_by(db_models.Subjects.name)
        if current_user is None or current_user.role != UserRole.ADMIN.value:
            stmt = stmt.filter(db_models.Subjects.is_active.is_(True))
        result = await self.db.execute(stmt)
        return [subject_models.SubjectRead.model_validate(s) for s in result.scalars().all()]

    async def create_subject(
        self,
        subject_data: subject_models.SubjectCreate,
        current_user: db_models.Users
    ) -> subject_models.SubjectRead:
        self._authorize_write(current_user)
        await self._check_name_free(subject_data.name)
        try:
            subject = db_models.Subjects(**subject_data.model_dump())
            self.db.add(subject)
            await self.db.flush()
            log.info(f"Admin {current_user.id} created subject '{subject.name}'.")
            return subject_models.SubjectRead.model_validate(subject)
        except IntegrityError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A subject with this name already exists.")

    async def update_subject(
        self,
        subject_id: UUID,
        update_data: subject_models.SubjectUpdate,
        current_user: db_models.Users
    ) -> subject_models.SubjectRead:
        self._authorize_write(current_user)
        subject = await self._get_subject_internal(subject_id)
        update_dict = update_data.model_dump(exclude_unset=True)
        if 'name' in update_dict:
            await self._check_name_free(update_dict['name'], exclude_id=subject.id)
        for key, value in update_dict.items():
            setattr(subject, key, value)
        await self.db.flush()
        log.info(f"Admin {current_user.id} updated subject {subject_id}.")
        return subject_models.SubjectRead.model_validate(subject)

    async def delete_subject(self, subject_id: UUID, current_user: db_models.Users) -> None:
        """
        Subjects still used by courses or sessions cannot be deleted; deactivate them instead.
        """
        self._authorize_write(current_user)
        subject = await self._get_subject_internal(subject_id)
        try:
            await self.db.delete(subject)
            await self.db.flush()
            log.info(f"Admin {current_user.id} deleted subject {subject_id}.")
        except IntegrityError as e:
            log.warning(f"Subject {subject_id} is still referenced: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This subject is in use. Deactivate it instead."
            )
