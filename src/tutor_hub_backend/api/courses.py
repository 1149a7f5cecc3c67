'''
API endpoints for Courses.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..database.db_enums import CourseStatus
from ..models import course as course_models
from ..models.common import Page
from ..services.security import require_any_profiled, require_teacher
from ..services.course_service import CourseService

class CoursesAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/courses",
            tags=["Courses"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_courses,
                methods=["GET"],
                response_model=Page[course_models.CourseRead])

        self.router.add_api_route(
                "/{course_id}",
                self.get_course,
                methods=["GET"],
                response_model=course_models.CourseRead)

        self.router.add_api_route(
                "/",
                self.create_course,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=course_models.CourseRead)

        self.router.add_api_route(
                "/{course_id}",
                self.update_course,
                methods=["PATCH"],
                response_model=course_models.CourseRead)

        self.router.add_api_route(
                "/{course_id}",
                self.delete_course,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_courses(
        self,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        course_service: Annotated[CourseService, Depends(CourseService)],
        subject_id: Optional[UUID] = None,
        search: Optional[str] = None,
        status_filter: Annotated[Optional[CourseStatus], Query(alias="status")] = None,
        page: Annotated[int, Query(ge=1)] = 1
    ) -> Any:
        """
        Teachers see their own courses, everyone else browses active ones.
        """
        return await course_service.list_courses_for_api(current_user, subject_id, search, status_filter, page)

    async def get_course(
        self,
        course_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        course_service: Annotated[CourseService, Depends(CourseService)]
    ) -> Any:
        return await course_service.get_course_for_api(course_id, current_user)

    async def create_course(
        self,
        course_data: course_models.CourseCreate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        course_service: Annotated[CourseService, Depends(CourseService)]
    ) -> Any:
        return await course_service.create_course(course_data, current_user)

    async def update_course(
        self,
        course_id: UUID,
        course_data: course_models.CourseUpdate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        course_service: Annotated[CourseService, Depends(CourseService)]
    ) -> Any:
        return await course_service.update_course(course_id, course_data, current_user)

    async def delete_course(
        self,
        course_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        course_service: Annotated[CourseService, Depends(CourseService)]
    ):
        await course_service.delete_course(course_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
courses_api = CoursesAPI()
router = courses_api.router
