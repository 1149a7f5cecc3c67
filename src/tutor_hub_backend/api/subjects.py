'''
API endpoints for Subjects.
'''
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, status, Response

from ..database import models as db_models
from ..models import subject as subject_models
from ..services.security import verify_token_and_get_user, require_admin
from ..services.subject_service import SubjectService

class SubjectsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/subjects",
            tags=["Subjects"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_subjects,
                methods=["GET"],
                response_model=List[subject_models.SubjectRead])

        self.router.add_api_route(
                "/",
                self.create_subject,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=subject_models.SubjectRead)

        self.router.add_api_route(
                "/{subject_id}",
                self.update_subject,
                methods=["PATCH"],
                response_model=subject_models.SubjectRead)

        self.router.add_api_route(
                "/{subject_id}",
                self.delete_subject,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_subjects(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ) -> List[Any]:
        """
        Active subjects; admins also see inactive ones.
        """
        return await subject_service.list_subjects_for_api(current_user)

    async def create_subject(
        self,
        subject_data: subject_models.SubjectCreate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ) -> Any:
        return await subject_service.create_subject(subject_data, current_user)

    async def update_subject(
        self,
        subject_id: UUID,
        subject_data: subject_models.SubjectUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ) -> Any:
        return await subject_service.update_subject(subject_id, subject_data, current_user)

    async def delete_subject(
        self,
        subject_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        subject_service: Annotated[SubjectService, Depends(SubjectService)]
    ):
        await subject_service.delete_subject(subject_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
subjects_api = SubjectsAPI()
router = subjects_api.router
