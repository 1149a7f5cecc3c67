'''
Role profiles: the setup wizards for parents, teachers and clients, the
caller's own profile, parent preferences and admin review of teachers/clients.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TeacherProfileStatus, ClientProfileStatus, NotificationType
from ..models import profile as profile_models
from ..models.common import WizardStepResult
from ..core.wizard import Wizard
from ..core.navigation import dashboard_path
from ..common.logger import log
from .user_service import UserService
from .children_service import ChildrenService
from .subject_service import SubjectService
from .notification_service import NotificationService

PROFILE_WIZARDS = {
    UserRole.PARENT.value: Wizard(
        "Parent profile",
        [profile_models.ParentContactStep, profile_models.ParentChildrenStep, profile_models.ParentPreferencesStep],
    ),
    UserRole.TEACHER.value: Wizard(
        "Teacher profile",
        [profile_models.TeacherPersonalStep, profile_models.TeacherEducationStep, profile_models.TeacherAvailabilityStep],
    ),
    UserRole.CLIENT.value: Wizard(
        "Client profile",
        [profile_models.ClientCompanyStep, profile_models.ClientContactStep, profile_models.ClientServicesStep],
    ),
}

# Allowed admin review moves
TEACHER_STATUS_FLOW = {
    TeacherProfileStatus.SUBMITTED.value: {TeacherProfileStatus.CHECKING.value},
    TeacherProfileStatus.CHECKING.value: {TeacherProfileStatus.VERIFIED.value},
    TeacherProfileStatus.VERIFIED.value: set(),
}
CLIENT_STATUS_FLOW = {
    ClientProfileStatus.PENDING.value: {ClientProfileStatus.APPROVED.value, ClientProfileStatus.REJECTED.value},
    ClientProfileStatus.APPROVED.value: set(),
    ClientProfileStatus.REJECTED.value: set(),
}


class ProfileService:
    """
    Service for profile setup and profile reads.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        self.db = db
        self.user_service = user_service
        self.children_service = children_service
        self.subject_service = subject_service
        self.notification_service = notification_service

    # --- Helpers ---

    def _wizard_for(self, current_user: db_models.Users) -> Wizard:
        wizard = PROFILE_WIZARDS.get(current_user.role)
        if wizard is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This account has no profile to set up.")
        return wizard

    def _authorize_role(self, current_user: db_models.Users, role: UserRole):
        if current_user.role != role.value:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to set up a {role.value} profile.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {role.value}s can complete this profile.",
                headers={"X-Redirect-To": dashboard_path(current_user.role)},
            )

    def _authorize_admin(self, current_user: db_models.Users):
        if current_user.role != UserRole.ADMIN.value:
            log.warning(f"User {current_user.id} tried to review profiles.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can review profiles.")

    def _check_not_completed(self, profile):
        if profile.has_completed_profile:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Your profile is already complete.")

    async def _notify_admins_of_review(self, current_user: db_models.Users):
        await self.notification_service.send_to_role(
            UserRole.ADMIN,
            NotificationType.SYSTEM,
            "Profile awaiting review",
            f"{current_user.name} completed a {current_user.role} profile.",
            metadata={"user_id": str(current_user.id)},
        )

    async def _profile_read(self, user_id: UUID) -> profile_models.ProfileRead:
        user = await self.user_service.get_user_by_id(user_id)
        return self.profile_for_api(user)

    # --- Reads ---

    def profile_for_api(self, current_user: db_models.Users) -> profile_models.ProfileRead:
        profile = profile_models.ProfileRead(
            role=current_user.role,
            profile_completed=UserService.has_completed_profile(current_user),
        )
        if current_user.parent_profile:
            profile.parent_profile = profile_models.ParentProfileRead.model_validate(current_user.parent_profile)
        if current_user.teacher_profile:
            profile.teacher_profile = profile_models.TeacherProfileRead.model_validate(current_user.teacher_profile)
        if current_user.client_profile:
            profile.client_profile = profile_models.ClientProfileRead.model_validate(current_user.client_profile)
        return profile

    async def validate_step(self, step: int, data: dict[str, Any], current_user: db_models.Users) -> WizardStepResult:
        wizard = self._wizard_for(current_user)
        validated = wizard.validate_step(step, data)
        if isinstance(validated, profile_models.TeacherEducationStep):
            await self.subject_service.get_subjects_by_ids(validated.subject_ids)
        elif isinstance(validated, profile_models.ParentChildrenStep):
            for child in validated.children:
                await self.subject_service.get_subjects_by_ids(child.subject_ids)
        next_step = wizard.next_step(step)
        return WizardStepResult(step=step, next_step=next_step, is_last=next_step is None)

    # --- Setup completion ---

    async def complete_parent_setup(
        self,
        setup: profile_models.ParentProfileSetup,
        current_user: db_models.Users
    ) -> profile_models.ProfileRead:
        """Saves all three parent steps, creates the children and marks the profile complete."""
        self._authorize_role(current_user, UserRole.PARENT)
        profile = current_user.parent_profile
        self._check_not_completed(profile)
        try:
            profile.phone_number = setup.phone_number
            profile.address = setup.address
            profile.number_of_children = setup.number_of_children
            profile.additional_information = setup.additional_information
            profile.emergency_contacts = [c.model_dump() for c in setup.emergency_contacts]
            profile.notification_preferences = setup.notification_preferences
            profile.newsletter_subscription = setup.newsletter_subscription
            profile.privacy_settings = setup.privacy_settings

            for child_data in setup.children:
                await self.children_service.build_child(profile, child_data)
            profile.has_completed_profile = True
            await self.db.flush()
            log.info(f"Parent {current_user.id} completed their profile with {len(setup.children)} children.")
            return await self._profile_read(current_user.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error completing parent profile for {current_user.id}: {e}", exc_info=True)
            raise

    async def complete_teacher_setup(
        self,
        setup: profile_models.TeacherProfileSetup,
        current_user: db_models.Users
    ) -> profile_models.ProfileRead:
        """Saves the teacher's details. The review status stays untouched."""
        self._authorize_role(current_user, UserRole.TEACHER)
        profile = current_user.teacher_profile
        self._check_not_completed(profile)
        try:
            profile.subjects = await self.subject_service.get_subjects_by_ids(setup.subject_ids)
            profile.phone = setup.phone
            profile.whatsapp = setup.whatsapp
            profile.fix_number = setup.fix_number
            profile.date_of_birth = setup.date_of_birth
            profile.place_of_birth = setup.place_of_birth
            profile.bio = setup.bio
            profile.education = [entry.model_dump() for entry in setup.education]
            profile.available_days = ",".join(str(day) for day in setup.available_days)
            profile.available_time_start = setup.available_time_start
            profile.available_time_end = setup.available_time_end
            profile.break_start = setup.break_start
            profile.break_end = setup.break_end
            profile.has_completed_profile = True
            await self.db.flush()

            await self._notify_admins_of_review(current_user)
            log.info(f"Teacher {current_user.id} completed their profile; status {profile.status}.")
            return await self._profile_read(current_user.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error completing teacher profile for {current_user.id}: {e}", exc_info=True)
            raise

    async def complete_client_setup(
        self,
        setup: profile_models.ClientProfileSetup,
        current_user: db_models.Users
    ) -> profile_models.ProfileRead:
        self._authorize_role(current_user, UserRole.CLIENT)
        profile = current_user.client_profile
        self._check_not_completed(profile)
        try:
            for key, value in setup.model_dump().items():
                setattr(profile, key, value)
            profile.has_completed_profile = True
            await self.db.flush()

            await self._notify_admins_of_review(current_user)
            log.info(f"Client {current_user.id} completed their profile.")
            return await self._profile_read(current_user.id)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error completing client profile for {current_user.id}: {e}", exc_info=True)
            raise

    async def update_parent_preferences(
        self,
        update_data: profile_models.ParentPreferencesUpdate,
        current_user: db_models.Users
    ) -> profile_models.ParentProfileRead:
        self._authorize_role(current_user, UserRole.PARENT)
        profile = current_user.parent_profile
        for key, value in update_data.model_dump(exclude_unset=True).items():
            setattr(profile, key, value)
        await self.db.flush()
        log.info(f"Parent {current_user.id} updated their preferences.")
        return profile_models.ParentProfileRead.model_validate(profile)

    # --- Admin review ---

    async def _get_profile_internal(self, model, profile_id: UUID, label: str):
        stmt = select(model).filter(model.id == profile_id).execution_options(populate_existing=True)
        if model is db_models.TeacherProfiles:
            stmt = stmt.options(selectinload(db_models.TeacherProfiles.subjects))
        profile = (await self.db.execute(stmt)).scalars().first()
        if not profile:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} profile not found.")
        return profile

    async def list_teacher_profiles(
        self,
        current_user: db_models.Users,
        status_filter: TeacherProfileStatus | None = None
    ) -> list[profile_models.TeacherProfileRead]:
        self._authorize_admin(current_user)
        stmt = select(db_models.TeacherProfiles).options(
            selectinload(db_models.TeacherProfiles.subjects)
        ).order_by(db_models.TeacherProfiles.created_at)
        if status_filter:
            stmt = stmt.filter(db_models.TeacherProfiles.status == status_filter.value)
        result = await self.db.execute(stmt)
        return [profile_models.TeacherProfileRead.model_validate(p) for p in result.scalars().all()]

    async def update_teacher_status(
        self,
        profile_id: UUID,
        update: profile_models.TeacherStatusUpdate,
        current_user: db_models.Users
    ) -> profile_models.TeacherProfileRead:
        self._authorize_admin(current_user)
        profile = await self._get_profile_internal(db_models.TeacherProfiles, profile_id, "Teacher")
        new_status = update.status.value
        if new_status not in TEACHER_STATUS_FLOW[profile.status]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"A teacher profile cannot move from '{profile.status}' to '{new_status}'."
            )
        profile.status = new_status
        await self.db.flush()

        await self.notification_service.send_to_user(
            profile.user_id,
            NotificationType.SYSTEM,
            "Profile status updated",
            f"Your teacher profile is now '{new_status}'.",
            metadata={"status": new_status},
        )
        log.info(f"Admin {current_user.id} moved teacher profile {profile_id} to {new_status}.")
        return profile_models.TeacherProfileRead.model_validate(profile)

    async def update_client_status(
        self,
        profile_id: UUID,
        update: profile_models.ClientStatusUpdate,
        current_user: db_models.Users
    ) -> profile_models.ClientProfileRead:
        self._authorize_admin(current_user)
        profile = await self._get_profile_internal(db_models.ClientProfiles, profile_id, "Client")
        new_status = update.status.value
        if new_status not in CLIENT_STATUS_FLOW[profile.status]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"A client profile cannot move from '{profile.status}' to '{new_status}'."
            )
        profile.status = new_status
        await self.db.flush()

        await self.notification_service.send_to_user(
            profile.user_id,
            NotificationType.SYSTEM,
            "Account review finished",
            f"Your client account has been {new_status}.",
            metadata={"status": new_status},
        )
        log.info(f"Admin {current_user.id} moved client profile {profile_id} to {new_status}.")
        return profile_models.ClientProfileRead.model_validate(profile)
