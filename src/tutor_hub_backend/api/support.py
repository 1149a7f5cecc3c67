'''
API endpoints for Support Tickets.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status, Response

from ..database import models as db_models
from ..models import support as support_models
from ..models.common import Page, WizardStepResult
from ..services.security import verify_token_and_get_user, require_admin
from ..services.support_service import SupportService

class SupportAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/support",
            tags=["Support"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/tickets/steps/{step}",
                self.validate_step,
                methods=["POST"],
                response_model=WizardStepResult)

        self.router.add_api_route(
                "/tickets",
                self.list_tickets,
                methods=["GET"],
                response_model=Page[support_models.TicketRead])

        self.router.add_api_route(
                "/tickets",
                self.create_ticket,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}",
                self.get_ticket,
                methods=["GET"],
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}/messages",
                self.reply,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}/attachments",
                self.add_attachment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=support_models.AttachmentRead)

        self.router.add_api_route(
                "/tickets/{ticket_id}/status",
                self.update_status,
                methods=["PATCH"],
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}/close",
                self.close_ticket,
                methods=["POST"],
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}/reopen",
                self.reopen_ticket,
                methods=["POST"],
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}/rating",
                self.rate_ticket,
                methods=["POST"],
                response_model=support_models.TicketDetail)

        self.router.add_api_route(
                "/tickets/{ticket_id}",
                self.delete_ticket,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def validate_step(
        self,
        step: int,
        data: Annotated[dict[str, Any], Body()],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return support_service.validate_step(step, data)

    async def list_tickets(
        self,
        filters: Annotated[support_models.TicketFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.list_tickets(current_user, filters)

    async def create_ticket(
        self,
        ticket_data: support_models.TicketCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.create_ticket(ticket_data, current_user)

    async def get_ticket(
        self,
        ticket_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.get_ticket(ticket_id, current_user)

    async def reply(
        self,
        ticket_id: UUID,
        message_data: support_models.MessageCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.reply(ticket_id, message_data, current_user)

    async def add_attachment(
        self,
        ticket_id: UUID,
        file: Annotated[UploadFile, File()],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)],
        message_id: Annotated[Optional[UUID], Form()] = None
    ) -> Any:
        return await support_service.add_attachment(ticket_id, file, current_user, message_id)

    async def update_status(
        self,
        ticket_id: UUID,
        status_data: support_models.TicketStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.update_status(ticket_id, status_data, current_user)

    async def close_ticket(
        self,
        ticket_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.close_ticket(ticket_id, current_user)

    async def reopen_ticket(
        self,
        ticket_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.reopen_ticket(ticket_id, current_user)

    async def rate_ticket(
        self,
        ticket_id: UUID,
        rating: support_models.TicketRating,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.rate_ticket(ticket_id, rating, current_user)

    async def delete_ticket(
        self,
        ticket_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ):
        await support_service.delete_ticket(ticket_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
support_api = SupportAPI()
router = support_api.router
