'''
Tests for the ProfileService: setup wizards per role and the admin review flow.
'''
import datetime
import pytest
from fastapi import HTTPException

from tutor_hub_backend.services.profile_service import ProfileService
from tutor_hub_backend.services.user_service import UserService
from tutor_hub_backend.services.children_service import ChildrenService
from tutor_hub_backend.database.db_enums import (
    UserRole, GenderEnum, AvailabilitySlot, TeacherProfileStatus, ClientProfileStatus
)
from tutor_hub_backend.models import profile as profile_models
from tutor_hub_backend.models import children as children_models
from tutor_hub_backend.common.exceptions import WizardValidationError

from tests.constants import TEST_SUBJECT_ID


async def fresh_user(user_service: UserService, role: UserRole, username: str):
    created = await user_service.create_user_with_profile(
        name=username.replace("_", " ").title(),
        username=username,
        email=f"{username}@example.com",
        password="long-enough-password",
        role=role,
    )
    return await user_service.get_user_by_id(created.id)


def parent_setup(**overrides) -> profile_models.ParentProfileSetup:
    data = dict(
        phone_number="+20 100 123 4567",
        address="12 Nile Street, Cairo",
        number_of_children=1,
        emergency_contacts=[{"name": "Aunt Huda", "phone": "+201001112223", "relationship": "aunt"}],
        children=[children_models.ChildCreate(
            name="Omar",
            gender=GenderEnum.MALE,
            age=9,
            school_name="Cairo International",
            grade="Grade 4",
            available_times=[AvailabilitySlot.MORNING, AvailabilitySlot.WEEKEND_MORNING],
            subject_ids=[TEST_SUBJECT_ID],
        )],
    )
    data.update(overrides)
    return profile_models.ParentProfileSetup(**data)


def teacher_setup(**overrides) -> profile_models.TeacherProfileSetup:
    data = dict(
        phone="+201009998887",
        date_of_birth=datetime.date(1990, 5, 17),
        place_of_birth="Alexandria",
        education=[{"degree": "BSc Mathematics", "institution": "Alexandria University", "year": 2012}],
        subject_ids=[TEST_SUBJECT_ID],
        available_days=[5, 1, 3, 3],
        available_time_start=datetime.time(9, 0),
        available_time_end=datetime.time(17, 0),
        break_start=datetime.time(12, 0),
        break_end=datetime.time(13, 0),
    )
    data.update(overrides)
    return profile_models.TeacherProfileSetup(**data)


def client_setup() -> profile_models.ClientProfileSetup:
    return profile_models.ClientProfileSetup(
        company_name="Acme Learning",
        position="HR Manager",
        industry="Education",
        company_size="11-50",
        phone="+201234567890",
        address="5 Tahrir Square",
        city="Cairo",
        country="Egypt",
        preferred_services=["assessments", "reports"],
    )


@pytest.mark.anyio
class TestParentSetup:

    async def test_complete_parent_setup(
        self, profile_service: ProfileService, user_service: UserService,
        children_service: ChildrenService, test_subject
    ):
        parent = await fresh_user(user_service, UserRole.PARENT, "new_parent")
        assert UserService.has_completed_profile(parent) is False

        profile = await profile_service.complete_parent_setup(parent_setup(), parent)

        assert profile.profile_completed is True
        assert profile.parent_profile.phone_number == "+20 100 123 4567"
        assert profile.parent_profile.emergency_contacts[0].name == "Aunt Huda"

        reloaded = await user_service.get_user_by_id(parent.id)
        [child] = await children_service.list_children_for_api(reloaded)
        assert child.name == "Omar"
        assert child.available_times == [AvailabilitySlot.MORNING, AvailabilitySlot.WEEKEND_MORNING]
        assert [s.id for s in child.subjects] == [TEST_SUBJECT_ID]

    async def test_setup_only_once(self, profile_service: ProfileService, test_parent):
        with pytest.raises(HTTPException) as exc_info:
            await profile_service.complete_parent_setup(parent_setup(), test_parent)
        assert exc_info.value.status_code == 400

    async def test_wrong_role_is_sent_to_its_dashboard(self, profile_service: ProfileService, test_teacher):
        with pytest.raises(HTTPException) as exc_info:
            await profile_service.complete_parent_setup(parent_setup(), test_teacher)
        assert exc_info.value.status_code == 403
        assert exc_info.value.headers == {"X-Redirect-To": "/teachers/dashboard"}

    async def test_update_preferences(self, profile_service: ProfileService, test_parent):
        updated = await profile_service.update_parent_preferences(
            profile_models.ParentPreferencesUpdate(newsletter_subscription=True), test_parent
        )
        assert updated.newsletter_subscription is True


@pytest.mark.anyio
class TestWizardSteps:

    async def test_invalid_phone_fails_step_one(
        self, profile_service: ProfileService, user_service: UserService
    ):
        parent = await fresh_user(user_service, UserRole.PARENT, "step_parent")
        with pytest.raises(WizardValidationError) as exc_info:
            await profile_service.validate_step(
                1, {"phone_number": "call me", "address": "12 Nile Street", "number_of_children": 1}, parent
            )
        assert list(exc_info.value.errors) == ["phone_number"]

    async def test_teacher_step_two_checks_subjects(
        self, profile_service: ProfileService, user_service: UserService, test_subject
    ):
        teacher = await fresh_user(user_service, UserRole.TEACHER, "step_teacher")
        education = [{"degree": "BSc", "institution": "Cairo University"}]

        ok = await profile_service.validate_step(2, {"education": education, "subject_ids": [str(TEST_SUBJECT_ID)]}, teacher)
        assert ok.next_step == 3

        with pytest.raises(HTTPException) as exc_info:
            await profile_service.validate_step(
                2, {"education": education, "subject_ids": ["00000000-0000-4000-8000-000000000000"]}, teacher
            )
        assert exc_info.value.status_code == 400

    async def test_break_outside_window(self, profile_service: ProfileService, user_service: UserService):
        teacher = await fresh_user(user_service, UserRole.TEACHER, "break_teacher")
        with pytest.raises(WizardValidationError) as exc_info:
            await profile_service.validate_step(
                3,
                {"available_days": [1], "available_time_start": "09:00", "available_time_end": "12:00",
                 "break_start": "12:30", "break_end": "13:00"},
                teacher,
            )
        assert exc_info.value.step == 3
        assert exc_info.value.errors["non_field_errors"] == ["The break must fall inside the availability window."]

    async def test_admins_have_no_wizard(self, profile_service: ProfileService, test_admin):
        with pytest.raises(HTTPException) as exc_info:
            await profile_service.validate_step(1, {}, test_admin)
        assert exc_info.value.status_code == 400


@pytest.mark.anyio
class TestTeacherAndClientReview:

    async def test_teacher_setup_waits_for_review(
        self, profile_service: ProfileService, user_service: UserService, test_admin, test_subject
    ):
        teacher = await fresh_user(user_service, UserRole.TEACHER, "pending_teacher")

        profile = await profile_service.complete_teacher_setup(teacher_setup(), teacher)

        assert profile.profile_completed is True
        assert profile.teacher_profile.status == TeacherProfileStatus.SUBMITTED
        assert profile.teacher_profile.available_days == "1,3,5"
        assert [s.name for s in profile.teacher_profile.subjects] == ["Mathematics"]

    async def test_teacher_status_flow(
        self, profile_service: ProfileService, user_service: UserService, test_admin, test_subject
    ):
        teacher = await fresh_user(user_service, UserRole.TEACHER, "flow_teacher")
        profile_id = teacher.teacher_profile.id

        with pytest.raises(HTTPException) as exc_info:
            await profile_service.update_teacher_status(
                profile_id, profile_models.TeacherStatusUpdate(status=TeacherProfileStatus.VERIFIED), test_admin
            )
        assert exc_info.value.status_code == 400

        checking = await profile_service.update_teacher_status(
            profile_id, profile_models.TeacherStatusUpdate(status=TeacherProfileStatus.CHECKING), test_admin
        )
        verified = await profile_service.update_teacher_status(
            profile_id, profile_models.TeacherStatusUpdate(status=TeacherProfileStatus.VERIFIED), test_admin
        )
        assert checking.status == TeacherProfileStatus.CHECKING
        assert verified.status == TeacherProfileStatus.VERIFIED

        submitted = await profile_service.list_teacher_profiles(test_admin, TeacherProfileStatus.SUBMITTED)
        assert submitted == []

    async def test_only_admins_review(self, profile_service: ProfileService, test_teacher):
        with pytest.raises(HTTPException) as exc_info:
            await profile_service.list_teacher_profiles(test_teacher)
        assert exc_info.value.status_code == 403

    async def test_client_setup_and_approval(
        self, profile_service: ProfileService, user_service: UserService, test_admin
    ):
        client_user = await fresh_user(user_service, UserRole.CLIENT, "acme_hr")
        profile = await profile_service.complete_client_setup(client_setup(), client_user)
        assert profile.client_profile.company_name == "Acme Learning"
        assert profile.client_profile.status == ClientProfileStatus.PENDING

        approved = await profile_service.update_client_status(
            profile.client_profile.id, profile_models.ClientStatusUpdate(status=ClientProfileStatus.APPROVED), test_admin
        )
        assert approved.status == ClientProfileStatus.APPROVED

        with pytest.raises(HTTPException) as exc_info:
            await profile_service.update_client_status(
                profile.client_profile.id, profile_models.ClientStatusUpdate(status=ClientProfileStatus.REJECTED), test_admin
            )
        assert exc_info.value.status_code == 400
