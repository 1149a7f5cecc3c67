'''
API endpoints for Learning Sessions: booking, lifecycle, listing, stats and the calendar.
'''
from datetime import date
from typing import Annotated, Any, Literal, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import sessions as session_models
from ..models.common import Page
from ..services.security import RoleChecker
from ..services.session_service import SessionService

require_session_user = RoleChecker(UserRole.PARENT, UserRole.TEACHER, UserRole.ADMIN)
require_session_host = RoleChecker(UserRole.TEACHER, UserRole.ADMIN)


class SessionsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/sessions",
            tags=["Sessions"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_sessions,
                methods=["GET"],
                response_model=Page[session_models.SessionRead])

        self.router.add_api_route(
                "/stats",
                self.get_stats,
                methods=["GET"],
                response_model=session_models.SessionStats)

        self.router.add_api_route(
                "/calendar",
                self.get_calendar,
                methods=["GET"],
                response_model=session_models.CalendarView)

        self.router.add_api_route(
                "/{session_id}",
                self.get_session,
                methods=["GET"],
                response_model=session_models.SessionRead)

        self.router.add_api_route(
                "/",
                self.schedule_session,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=session_models.SessionRead)

        self.router.add_api_route(
                "/{session_id}/cancel",
                self.cancel_session,
                methods=["POST"],
                response_model=session_models.SessionRead)

        self.router.add_api_route(
                "/{session_id}/complete",
                self.complete_session,
                methods=["POST"],
                response_model=session_models.SessionRead)

    async def list_sessions(
        self,
        filters: Annotated[session_models.SessionFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)]
    ) -> Any:
        return await session_service.list_sessions(current_user, filters)

    async def get_stats(
        self,
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)],
        children_id: Optional[UUID] = None
    ) -> Any:
        return await session_service.get_stats(current_user, children_id)

    async def get_calendar(
        self,
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)],
        view: Literal['day', 'week', 'month'] = 'week',
        anchor: Optional[date] = None
    ) -> Any:
        """
        Sessions around `anchor` (default: today in the caller's timezone), grouped by day.
        """
        return await session_service.get_calendar(current_user, view, anchor)

    async def get_session(
        self,
        session_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)]
    ) -> Any:
        return await session_service.get_session_for_api(session_id, current_user)

    async def schedule_session(
        self,
        session_data: session_models.SessionCreate,
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)]
    ) -> Any:
        """
        Books a session. 409 when the child or the teacher is already busy.
        """
        return await session_service.schedule_session(session_data, current_user)

    async def cancel_session(
        self,
        session_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_session_user)],
        session_service: Annotated[SessionService, Depends(SessionService)]
    ) -> Any:
        return await session_service.cancel_session(session_id, current_user)

    async def complete_session(
        self,
        session_id: UUID,
        completion: session_models.SessionComplete,
        current_user: Annotated[db_models.Users, Depends(require_session_host)],
        session_service: Annotated[SessionService, Depends(SessionService)]
    ) -> Any:
        return await session_service.complete_session(session_id, completion, current_user)

# Instantiate the class and export its router
sessions_api = SessionsAPI()
router = sessions_api.router
