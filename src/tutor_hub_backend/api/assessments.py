'''
API endpoints for Assessments: authoring, questions, assignment, attempts, grading and reports.
'''
from typing import Annotated, Any, List, Optional, Union
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..database.db_enums import AssessmentType, AssessmentStatus
from ..models import assessment as assessment_models
from ..models.common import Page
from ..services.security import require_any_profiled, require_teacher
from ..services.assessment_service import AssessmentService

class AssessmentsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/assessments",
            tags=["Assessments"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        # --- Reads ---
        self.router.add_api_route(
                "/",
                self.list_assessments,
                methods=["GET"],
                response_model=Page[assessment_models.AssessmentRead])

        self.router.add_api_route(
                "/{assessment_id}",
                self.get_assessment,
                methods=["GET"],
                response_model=Union[assessment_models.AssessmentDetail, assessment_models.AssessmentParticipantView])

        # --- Authoring ---
        self.router.add_api_route(
                "/",
                self.create_assessment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=assessment_models.AssessmentDetail)

        self.router.add_api_route(
                "/{assessment_id}",
                self.update_assessment,
                methods=["PATCH"],
                response_model=assessment_models.AssessmentDetail)

        self.router.add_api_route(
                "/{assessment_id}",
                self.delete_assessment,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
                "/{assessment_id}/duplicate",
                self.duplicate_assessment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=assessment_models.AssessmentDetail)

        self.router.add_api_route(
                "/{assessment_id}/toggle-publish",
                self.toggle_publish,
                methods=["POST"],
                response_model=assessment_models.AssessmentDetail)

        # --- Questions ---
        self.router.add_api_route(
                "/{assessment_id}/questions",
                self.add_question,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=assessment_models.AssessmentDetail)

        self.router.add_api_route(
                "/{assessment_id}/questions/{question_id}",
                self.update_question,
                methods=["PATCH"],
                response_model=assessment_models.AssessmentDetail)

        self.router.add_api_route(
                "/{assessment_id}/questions/{question_id}",
                self.delete_question,
                methods=["DELETE"],
                response_model=assessment_models.AssessmentDetail)

        # --- Assignment & attempts ---
        self.router.add_api_route(
                "/{assessment_id}/assign",
                self.assign,
                methods=["POST"],
                response_model=assessment_models.AssignResult)

        self.router.add_api_route(
                "/{assessment_id}/start",
                self.start_attempt,
                methods=["POST"],
                response_model=assessment_models.AssignmentRead)

        self.router.add_api_route(
                "/{assessment_id}/submit",
                self.submit,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=assessment_models.SubmissionRead)

        # --- Grading & reports ---
        self.router.add_api_route(
                "/{assessment_id}/submissions",
                self.list_submissions,
                methods=["GET"],
                response_model=List[assessment_models.SubmissionRead])

        self.router.add_api_route(
                "/submissions/{submission_id}/grade",
                self.grade_submission,
                methods=["POST"],
                response_model=assessment_models.SubmissionRead)

        self.router.add_api_route(
                "/{assessment_id}/report",
                self.get_report,
                methods=["GET"],
                response_model=assessment_models.AssessmentReport)

    async def list_assessments(
        self,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)],
        type_filter: Annotated[Optional[AssessmentType], Query(alias="type")] = None,
        status_filter: Annotated[Optional[AssessmentStatus], Query(alias="status")] = None,
        search: Optional[str] = None,
        children_id: Optional[UUID] = None,
        page: Annotated[int, Query(ge=1)] = 1
    ) -> Any:
        return await assessment_service.list_assessments(
            current_user, type_filter, status_filter, search, children_id, page
        )

    async def get_assessment(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)],
        children_id: Optional[UUID] = None
    ) -> Any:
        """
        Owners see the answer key; parents (with `children_id`) and clients see the participant view.
        """
        return await assessment_service.get_assessment_for_api(assessment_id, current_user, children_id)

    async def create_assessment(
        self,
        assessment_data: assessment_models.AssessmentCreate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.create_assessment(assessment_data, current_user)

    async def update_assessment(
        self,
        assessment_id: UUID,
        assessment_data: assessment_models.AssessmentUpdate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.update_assessment(assessment_id, assessment_data, current_user)

    async def delete_assessment(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ):
        await assessment_service.delete_assessment(assessment_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def duplicate_assessment(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.duplicate_assessment(assessment_id, current_user)

    async def toggle_publish(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.toggle_publish(assessment_id, current_user)

    async def add_question(
        self,
        assessment_id: UUID,
        question_data: assessment_models.QuestionCreate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.add_question(assessment_id, question_data, current_user)

    async def update_question(
        self,
        assessment_id: UUID,
        question_id: UUID,
        question_data: assessment_models.QuestionUpdate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.update_question(assessment_id, question_id, question_data, current_user)

    async def delete_question(
        self,
        assessment_id: UUID,
        question_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.delete_question(assessment_id, question_id, current_user)

    async def assign(
        self,
        assessment_id: UUID,
        assign_data: assessment_models.AssessmentAssign,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.assign(assessment_id, assign_data, current_user)

    async def start_attempt(
        self,
        assessment_id: UUID,
        participant: assessment_models.ParticipantRef,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.start_attempt(assessment_id, participant, current_user)

    async def submit(
        self,
        assessment_id: UUID,
        submission: assessment_models.SubmissionCreate,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        """
        One submission per participant; a repeat answers 409.
        """
        return await assessment_service.submit(assessment_id, submission, current_user)

    async def list_submissions(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.list_submissions(assessment_id, current_user)

    async def grade_submission(
        self,
        submission_id: UUID,
        grade: assessment_models.SubmissionGrade,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.grade_submission(submission_id, grade, current_user)

    async def get_report(
        self,
        assessment_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        assessment_service: Annotated[AssessmentService, Depends(AssessmentService)]
    ) -> Any:
        return await assessment_service.get_report(assessment_id, current_user)

# Instantiate the class and export its router
assessments_api = AssessmentsAPI()
router = assessments_api.router
