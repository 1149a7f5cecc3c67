'''
API endpoints for the caller's profile and the profile setup wizards.
Setup routes stay reachable while the profile is incomplete.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Body, Depends

from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import profile as profile_models
from ..models.common import WizardStepResult
from ..services.security import RoleChecker, require_parent
from ..services.profile_service import ProfileService

setup_guard = RoleChecker(UserRole.PARENT, UserRole.TEACHER, UserRole.CLIENT, require_profile=False)
parent_setup_guard = RoleChecker(UserRole.PARENT, require_profile=False)
teacher_setup_guard = RoleChecker(UserRole.TEACHER, require_profile=False)
client_setup_guard = RoleChecker(UserRole.CLIENT, require_profile=False)


class ProfilesAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/profile",
            tags=["Profiles"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.get_profile,
                methods=["GET"],
                response_model=profile_models.ProfileRead)

        self.router.add_api_route(
                "/setup/steps/{step}",
                self.validate_setup_step,
                methods=["POST"],
                response_model=WizardStepResult)

        self.router.add_api_route(
                "/setup/parent",
                self.complete_parent_setup,
                methods=["POST"],
                response_model=profile_models.ProfileRead)

        self.router.add_api_route(
                "/setup/teacher",
                self.complete_teacher_setup,
                methods=["POST"],
                response_model=profile_models.ProfileRead)

        self.router.add_api_route(
                "/setup/client",
                self.complete_client_setup,
                methods=["POST"],
                response_model=profile_models.ProfileRead)

        self.router.add_api_route(
                "/preferences",
                self.update_preferences,
                methods=["PATCH"],
                response_model=profile_models.ParentProfileRead)

    async def get_profile(
        self,
        current_user: Annotated[db_models.Users, Depends(setup_guard)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return profile_service.profile_for_api(current_user)

    async def validate_setup_step(
        self,
        step: int,
        data: Annotated[dict[str, Any], Body()],
        current_user: Annotated[db_models.Users, Depends(setup_guard)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        """
        Validates one step of the caller's role-specific setup wizard.
        """
        return await profile_service.validate_step(step, data, current_user)

    async def complete_parent_setup(
        self,
        setup: profile_models.ParentProfileSetup,
        current_user: Annotated[db_models.Users, Depends(parent_setup_guard)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.complete_parent_setup(setup, current_user)

    async def complete_teacher_setup(
        self,
        setup: profile_models.TeacherProfileSetup,
        current_user: Annotated[db_models.Users, Depends(teacher_setup_guard)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.complete_teacher_setup(setup, current_user)

    async def complete_client_setup(
        self,
        setup: profile_models.ClientProfileSetup,
        current_user: Annotated[db_models.Users, Depends(client_setup_guard)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.complete_client_setup(setup, current_user)

    async def update_preferences(
        self,
        update_data: profile_models.ParentPreferencesUpdate,
        current_user: Annotated[db_models.Users, Depends(require_parent)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.update_parent_preferences(update_data, current_user)

# Instantiate the class and export its router
profiles_api = ProfilesAPI()
router = profiles_api.router
