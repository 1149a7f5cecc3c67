'''
Teaching materials: files and links owned by teachers, tagged with the
teacher's subjects and attached to the teacher's courses.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, MaterialType
from ..models import material as material_models
from ..models.common import Page
from ..common.config import settings
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .subject_service import SubjectService
from .uploads import store_upload, remove_stored_file

MATERIALS_PER_PAGE = 12


def material_loaders():
    return (
        selectinload(db_models.Materials.subjects),
        selectinload(db_models.Materials.course_links),
    )


class MaterialService:
    """
    Service for teaching materials.
    Teachers manage their own, parents browse public materials and those of
    their children's teachers, admins see everything.
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
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to manage materials.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only teachers can manage materials."
            )
        return current_user.teacher_profile

    def _authorize_owner(self, material: db_models.Materials, current_user: db_models.Users):
        profile = self._teacher_profile_of(current_user)
        if material.teacher_profile_id != profile.id:
            log.warning(f"SECURITY: User {current_user.id} tried to modify material {material.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this material."
            )

    def _families_teachers(self, current_user: db_models.Users):
        """Teacher profile ids of everyone teaching one of the parent's children."""
        own_children = select(db_models.Children.id).filter(
            db_models.Children.parent_profile_id == current_user.parent_profile.id
        )
        assigned = select(db_models.Children.teacher_id).filter(db_models.Children.id.in_(own_children))
        booked = select(db_models.LearningSessions.teacher_id).filter(
            db_models.LearningSessions.children_id.in_(own_children)
        )
        return select(db_models.TeacherProfiles.id).filter(
            or_(db_models.TeacherProfiles.user_id.in_(assigned), db_models.TeacherProfiles.user_id.in_(booked))
        )

    def _scope(self, stmt, current_user: db_models.Users):
        m = db_models.Materials
        if current_user.role == UserRole.ADMIN.value:
            return stmt
        if current_user.role == UserRole.TEACHER.value and current_user.teacher_profile:
            return stmt.filter(m.teacher_profile_id == current_user.teacher_profile.id)
        if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            return stmt.filter(or_(
                m.is_public.is_(True), m.teacher_profile_id.in_(self._families_teachers(current_user))
            ))
        return stmt.filter(m.is_public.is_(True))

    async def _authorize_read(self, material: db_models.Materials, current_user: db_models.Users):
        stmt = self._scope(select(db_models.Materials.id), current_user).filter(db_models.Materials.id == material.id)
        if (await self.db.execute(stmt)).first() is None:
            # Private materials look missing to everyone who cannot see them
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found.")

    # --- Internal Helpers ---

    async def _get_material_internal(self, material_id: UUID) -> db_models.Materials:
        stmt = select(db_models.Materials).options(*material_loaders()).filter(
            db_models.Materials.id == material_id
        ).execution_options(populate_existing=True)
        material = (await self.db.execute(stmt)).scalars().first()
        if not material:
            log.warning(f"Tried to fetch non-existing material: {material_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found.")
        return material

    async def _teacher_subjects(
        self,
        profile: db_models.TeacherProfiles,
        subject_ids: list[UUID]
    ) -> list[db_models.Subjects]:
        subjects = await self.subject_service.get_subjects_by_ids(subject_ids)
        taught = set((await self.db.execute(
            select(db_models.subject_teacher.c.subject_id).filter(
                db_models.subject_teacher.c.teacher_profile_id == profile.id
            )
        )).scalars().all())
        if any(subject.id not in taught for subject in subjects):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Materials can only be tagged with subjects you teach."
            )
        return subjects

    async def _course_links(
        self,
        profile: db_models.TeacherProfiles,
        course_ids: list[UUID]
    ) -> list[db_models.CourseMaterials]:
        unique_ids = list(dict.fromkeys(course_ids))
        if not unique_ids:
            return []
        owned = set((await self.db.execute(
            select(db_models.Courses.id).filter(
                db_models.Courses.id.in_(unique_ids),
                db_models.Courses.teacher_profile_id == profile.id,
            )
        )).scalars().all())
        if len(owned) != len(unique_ids):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Materials can only be added to your own courses."
            )
        return [db_models.CourseMaterials(course_id=course_id, order=index) for index, course_id in enumerate(unique_ids)]

    async def _store(self, upload: UploadFile, profile: db_models.TeacherProfiles):
        return await store_upload(upload, f"materials/{profile.id}", settings.MAX_MATERIAL_UPLOAD_SIZE)

    # --- Public Methods (API-Facing) ---

    async def list_materials(
        self,
        current_user: db_models.Users,
        filters: material_models.MaterialFilters
    ) -> Page[material_models.MaterialRead]:
        m = db_models.Materials
        stmt = self._scope(select(m).options(*material_loaders()), current_user)
        if filters.type:
            stmt = stmt.filter(m.type == filters.type.value)
        if filters.subject_id:
            stmt = stmt.filter(m.subjects.any(db_models.Subjects.id == filters.subject_id))
        if filters.course_id:
            stmt = stmt.filter(m.course_links.any(db_models.CourseMaterials.course_id == filters.course_id))
        if filters.visibility:
            stmt = stmt.filter(m.is_public.is_(filters.visibility == 'public'))
        if filters.search:
            pattern = contains_pattern(filters.search)
            stmt = stmt.filter(or_(
                func.lower(m.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(m.description).like(pattern, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.order_by(m.is_featured.desc(), m.created_at.desc(), m.id)
        return await paginate(self.db, stmt, filters.page, material_models.MaterialRead, per_page=MATERIALS_PER_PAGE)

    async def get_material(self, material_id: UUID, current_user: db_models.Users) -> material_models.MaterialRead:
        material = await self._get_material_internal(material_id)
        await self._authorize_read(material, current_user)
        return material_models.MaterialRead.model_validate(material)

    async def download_material(self, material_id: UUID, current_user: db_models.Users) -> FileResponse:
        material = await self._get_material_internal(material_id)
        await self._authorize_read(material, current_user)
        if material.file_path is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This material is a link, not a file.")
        return FileResponse(material.file_path, media_type=material.file_type, filename=material.file_name)

    async def create_material(
        self,
        data: material_models.MaterialCreate,
        current_user: db_models.Users,
        upload: Optional[UploadFile] = None
    ) -> material_models.MaterialRead:
        profile = self._teacher_profile_of(current_user)
        is_link = data.type == MaterialType.LINK
        if not is_link and upload is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload a file for this material.")
        subjects = await self._teacher_subjects(profile, data.subject_ids)
        course_links = await self._course_links(profile, data.course_ids)

        stored = None
        try:
            material = db_models.Materials(
                teacher_profile_id=profile.id,
                **data.model_dump(exclude={'type', 'subject_ids', 'course_ids', 'external_url'}),
                type=data.type.value,
                external_url=data.external_url if is_link else None,
                subjects=subjects,
                course_links=course_links,
            )
            if not is_link:
                stored = await self._store(upload, profile)
                for key, value in stored._asdict().items():
                    setattr(material, key, value)
            self.db.add(material)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} added {data.type.value} material {material.id}.")
            return material_models.MaterialRead.model_validate(await self._get_material_internal(material.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating material for teacher {current_user.id}: {e}", exc_info=True)
            if stored is not None:
                await remove_stored_file(stored.file_path)
            raise

    async def update_material(
        self,
        material_id: UUID,
        data: material_models.MaterialUpdate,
        current_user: db_models.Users
    ) -> material_models.MaterialRead:
        material = await self._get_material_internal(material_id)
        self._authorize_owner(material, current_user)
        profile = current_user.teacher_profile
        changes = data.model_dump(exclude_unset=True, exclude={'subject_ids', 'course_ids'})
        if 'external_url' in changes and material.type != MaterialType.LINK.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only links have an external URL.")
        if material.type == MaterialType.LINK.value and 'external_url' in changes and not changes['external_url']:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A link needs an external URL.")

        try:
            for key, value in changes.items():
                setattr(material, key, value)
            if data.subject_ids is not None:
                material.subjects = await self._teacher_subjects(profile, data.subject_ids)
            if data.course_ids is not None:
                links = await self._course_links(profile, data.course_ids)
                material.course_links.clear()
                await self.db.flush()
                material.course_links.extend(links)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} updated material {material.id}.")
            return material_models.MaterialRead.model_validate(await self._get_material_internal(material.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating material {material_id}: {e}", exc_info=True)
            raise

    async def replace_file(
        self,
        material_id: UUID,
        upload: UploadFile,
        current_user: db_models.Users
    ) -> material_models.MaterialRead:
        material = await self._get_material_internal(material_id)
        self._authorize_owner(material, current_user)
        if material.type == MaterialType.LINK.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Links do not have a file.")
        old_path = material.file_path
        stored = await self._store(upload, current_user.teacher_profile)
        for key, value in stored._asdict().items():
            setattr(material, key, value)
        await self.db.flush()
        await remove_stored_file(old_path)
        log.info(f"Teacher {current_user.id} replaced the file of material {material.id}.")
        return material_models.MaterialRead.model_validate(await self._get_material_internal(material.id))

    async def delete_material(self, material_id: UUID, current_user: db_models.Users) -> None:
        material = await self._get_material_internal(material_id)
        if current_user.role != UserRole.ADMIN.value:
            self._authorize_owner(material, current_user)
        file_path = material.file_path
        await self.db.delete(material)
        await self.db.flush()
        await remove_stored_file(file_path)
        log.info(f"User {current_user.id} deleted material {material_id}.")
