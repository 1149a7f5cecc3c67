'''
API endpoints for Homework.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, UploadFile, status, Response

from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import homework as homework_models
from ..models.common import Page
from ..services.security import RoleChecker, require_parent
from ..services.homework_service import HomeworkService

require_homework_user = RoleChecker(UserRole.PARENT, UserRole.TEACHER, UserRole.ADMIN)
require_homework_setter = RoleChecker(UserRole.TEACHER, UserRole.ADMIN)

class HomeworkAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/homework",
            tags=["Homework"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_homework,
                methods=["GET"],
                response_model=Page[homework_models.HomeworkRead])

        self.router.add_api_route(
                "/overview",
                self.get_overview,
                methods=["GET"],
                response_model=homework_models.HomeworkOverview)

        self.router.add_api_route(
                "/",
                self.create_homework,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=homework_models.HomeworkRead)

        self.router.add_api_route(
                "/{homework_id}",
                self.get_homework,
                methods=["GET"],
                response_model=homework_models.HomeworkRead)

        self.router.add_api_route(
                "/{homework_id}",
                self.update_homework,
                methods=["PATCH"],
                response_model=homework_models.HomeworkRead)

        self.router.add_api_route(
                "/{homework_id}",
                self.delete_homework,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
                "/{homework_id}/toggle-completion",
                self.toggle_completion,
                methods=["POST"],
                response_model=homework_models.HomeworkRead)

        self.router.add_api_route(
                "/{homework_id}/grade",
                self.grade_homework,
                methods=["POST"],
                response_model=homework_models.HomeworkRead)

        self.router.add_api_route(
                "/{homework_id}/attachments",
                self.add_attachment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=homework_models.HomeworkAttachmentRead)

        self.router.add_api_route(
                "/{homework_id}/attachments/{attachment_id}",
                self.delete_attachment,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_homework(
        self,
        filters: Annotated[homework_models.HomeworkFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(require_homework_user)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.list_homework(current_user, filters)

    async def get_overview(
        self,
        current_user: Annotated[db_models.Users, Depends(require_homework_user)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)],
        child_id: Optional[UUID] = None
    ) -> Any:
        return await homework_service.get_overview(current_user, child_id)

    async def create_homework(
        self,
        homework_data: homework_models.HomeworkCreate,
        current_user: Annotated[db_models.Users, Depends(require_homework_setter)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.create_homework(homework_data, current_user)

    async def get_homework(
        self,
        homework_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_homework_user)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.get_homework(homework_id, current_user)

    async def update_homework(
        self,
        homework_id: UUID,
        homework_data: homework_models.HomeworkUpdate,
        current_user: Annotated[db_models.Users, Depends(require_homework_setter)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.update_homework(homework_id, homework_data, current_user)

    async def delete_homework(
        self,
        homework_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_homework_setter)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ):
        await homework_service.delete_homework(homework_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def toggle_completion(
        self,
        homework_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_parent)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.toggle_completion(homework_id, current_user)

    async def grade_homework(
        self,
        homework_id: UUID,
        grade: homework_models.HomeworkGrade,
        current_user: Annotated[db_models.Users, Depends(require_homework_setter)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.grade_homework(homework_id, grade, current_user)

    async def add_attachment(
        self,
        homework_id: UUID,
        file: Annotated[UploadFile, File()],
        current_user: Annotated[db_models.Users, Depends(require_homework_user)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ) -> Any:
        return await homework_service.add_attachment(homework_id, file, current_user)

    async def delete_attachment(
        self,
        homework_id: UUID,
        attachment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_homework_user)],
        homework_service: Annotated[HomeworkService, Depends(HomeworkService)]
    ):
        await homework_service.delete_attachment(homework_id, attachment_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
homework_api = HomeworkAPI()
router = homework_api.router
