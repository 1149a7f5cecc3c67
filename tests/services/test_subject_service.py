import pytest
from uuid import UUID
from decimal import Decimal
from fastapi import HTTPException

from tutor_hub_backend.services.subject_service import SubjectService
from tutor_hub_backend.models import subject as subject_models

from tests.constants import TEST_SUBJECT_ID
from tests.database import factories


@pytest.mark.anyio
class TestSubjectService:

    async def test_get_subjects_by_ids(self, subject_service: SubjectService, test_subject):
        subjects = await subject_service.get_subjects_by_ids([TEST_SUBJECT_ID, TEST_SUBJECT_ID])
        assert [s.id for s in subjects] == [TEST_SUBJECT_ID]
        assert await subject_service.get_subjects_by_ids([]) == []

    async def test_inactive_subjects_count_as_missing(self, subject_service: SubjectService, db_session):
        retired = factories.SubjectFactory(is_active=False)
        await db_session.flush()
        with pytest.raises(HTTPException) as e:
            await subject_service.get_subjects_by_ids([retired.id])
        assert e.value.status_code == 400

    async def test_only_admins_see_inactive_subjects(
        self, subject_service: SubjectService, test_subject, test_admin, test_parent, db_session
    ):
        factories.SubjectFactory(name="Zoology", is_active=False)
        await db_session.flush()

        assert [s.name for s in await subject_service.list_subjects_for_api(test_parent)] == ["Mathematics"]
        assert [s.name for s in await subject_service.list_subjects_for_api()] == ["Mathematics"]
        assert [s.name for s in await subject_service.list_subjects_for_api(test_admin)] == ["Mathematics", "Zoology"]

    async def test_create_subject(self, subject_service: SubjectService, test_admin, test_subject):
        created = await subject_service.create_subject(
            subject_models.SubjectCreate(name="Physics", description="Mechanics first"), test_admin
        )
        assert created.is_active is True

        with pytest.raises(HTTPException) as e:
            await subject_service.create_subject(subject_models.SubjectCreate(name="mathematics"), test_admin)
        assert e.value.status_code == 400

    async def test_teachers_cannot_manage_subjects(self, subject_service: SubjectService, test_teacher):
        with pytest.raises(HTTPException) as e:
            await subject_service.create_subject(subject_models.SubjectCreate(name="Physics"), test_teacher)
        assert e.value.status_code == 403

    async def test_update_subject(self, subject_service: SubjectService, test_admin, test_subject):
        updated = await subject_service.update_subject(
            TEST_SUBJECT_ID, subject_models.SubjectUpdate(is_active=False), test_admin
        )
        assert updated.is_active is False
        assert updated.name == "Mathematics"

        with pytest.raises(HTTPException) as e:
            await subject_service.update_subject(UUID(int=1), subject_models.SubjectUpdate(name="Art"), test_admin)
        assert e.value.status_code == 404

    async def test_delete_unused_subject(self, subject_service: SubjectService, test_admin, db_session):
        unused = factories.SubjectFactory()
        await db_session.flush()

        await subject_service.delete_subject(unused.id, test_admin)
        assert [s.id for s in await subject_service.list_subjects_for_api(test_admin)] == []

    async def test_subject_in_use_cannot_be_deleted(
        self, subject_service: SubjectService, test_admin, test_teacher, test_subject, db_session
    ):
        factories.CourseFactory(
            teacher_profile_id=test_teacher.teacher_profile.id, subject_id=test_subject.id, price=Decimal("10.00")
        )
        await db_session.flush()

        with pytest.raises(HTTPException) as e:
            await subject_service.delete_subject(test_subject.id, test_admin)
        assert e.value.status_code == 409
