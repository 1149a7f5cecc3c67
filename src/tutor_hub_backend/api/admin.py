'''
API endpoints for admin user management and profile reviews.
'''
from typing import Annotated, Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..database.db_enums import UserRole, TeacherProfileStatus
from ..models import user as user_models
from ..models import profile as profile_models
from ..models.common import Page
from ..services.security import require_admin
from ..services.user_service import AdminUserService
from ..services.profile_service import ProfileService


class AdminUsersAPI:
    """CRUD endpoints over every account."""
    def __init__(self):
        self.router = APIRouter(
                prefix="/admin/users",
                tags=["Admin"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_users,
                methods=["GET"],
                response_model=Page[user_models.UserRead])
        self.router.add_api_route(
                "/",
                self.create_user,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/{user_id}",
                self.get_user,
                methods=["GET"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/{user_id}",
                self.update_user,
                methods=["PATCH"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/{user_id}",
                self.delete_user,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_users(
        self,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        user_service: Annotated[AdminUserService, Depends(AdminUserService)],
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: Annotated[int, Query(ge=1)] = 1
    ) -> Any:
        return await user_service.list_users(current_user, role, search, is_active, page)

    async def create_user(
        self,
        user_data: user_models.AdminUserCreate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        user_service: Annotated[AdminUserService, Depends(AdminUserService)]
    ) -> Any:
        return await user_service.create_user(user_data, current_user)

    async def get_user(
        self,
        user_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        user_service: Annotated[AdminUserService, Depends(AdminUserService)]
    ) -> Any:
        return await user_service.get_user_for_api(user_id, current_user)

    async def update_user(
        self,
        user_id: UUID,
        update_data: user_models.AdminUserUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        user_service: Annotated[AdminUserService, Depends(AdminUserService)]
    ) -> Any:
        return await user_service.update_user(user_id, update_data, current_user)

    async def delete_user(
        self,
        user_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        user_service: Annotated[AdminUserService, Depends(AdminUserService)]
    ):
        await user_service.delete_user(user_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)


class AdminProfilesAPI:
    """Teacher verification and client approval."""
    def __init__(self):
        self.router = APIRouter(
                prefix="/admin",
                tags=["Admin"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/teachers",
                self.list_teacher_profiles,
                methods=["GET"],
                response_model=List[profile_models.TeacherProfileRead])
        self.router.add_api_route(
                "/teachers/{profile_id}/status",
                self.update_teacher_status,
                methods=["PATCH"],
                response_model=profile_models.TeacherProfileRead)
        self.router.add_api_route(
                "/clients/{profile_id}/status",
                self.update_client_status,
                methods=["PATCH"],
                response_model=profile_models.ClientProfileRead)

    async def list_teacher_profiles(
        self,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)],
        status_filter: Annotated[Optional[TeacherProfileStatus], Query(alias="status")] = None
    ) -> List[Any]:
        return await profile_service.list_teacher_profiles(current_user, status_filter)

    async def update_teacher_status(
        self,
        profile_id: UUID,
        update: profile_models.TeacherStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.update_teacher_status(profile_id, update, current_user)

    async def update_client_status(
        self,
        profile_id: UUID,
        update: profile_models.ClientStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        profile_service: Annotated[ProfileService, Depends(ProfileService)]
    ) -> Any:
        return await profile_service.update_client_status(profile_id, update, current_user)


admin_users_api = AdminUsersAPI()
admin_profiles_api = AdminProfilesAPI()

# Export both routers so main.py can include them
admin_users_router = admin_users_api.router
admin_profiles_router = admin_profiles_api.router
