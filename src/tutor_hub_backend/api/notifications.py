'''
API endpoints for the notification center.
'''
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..models import notification as notification_models
from ..models.common import Page
from ..services.security import verify_token_and_get_user, require_admin
from ..services.notification_service import NotificationService

class NotificationsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/notifications",
            tags=["Notifications"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_notifications,
                methods=["GET"],
                response_model=Page[notification_models.NotificationRead])

        self.router.add_api_route(
                "/unread-count",
                self.unread_count,
                methods=["GET"],
                response_model=notification_models.UnreadCount)

        self.router.add_api_route(
                "/stats",
                self.get_stats,
                methods=["GET"],
                response_model=notification_models.NotificationStats)

        self.router.add_api_route(
                "/check-new",
                self.check_for_new,
                methods=["POST"],
                response_model=List[notification_models.NotificationRead])

        self.router.add_api_route(
                "/read-all",
                self.mark_all_as_read,
                methods=["POST"],
                response_model=notification_models.BulkActionResult)

        self.router.add_api_route(
                "/bulk",
                self.bulk_action,
                methods=["POST"],
                response_model=notification_models.BulkActionResult)

        self.router.add_api_route(
                "/send",
                self.broadcast,
                methods=["POST"],
                response_model=notification_models.NotificationSendResult)

        self.router.add_api_route(
                "/{notification_id}/read",
                self.mark_as_read,
                methods=["POST"],
                response_model=notification_models.NotificationRead)

        self.router.add_api_route(
                "/{notification_id}/unread",
                self.mark_as_unread,
                methods=["POST"],
                response_model=notification_models.NotificationRead)

        self.router.add_api_route(
                "/{notification_id}",
                self.delete_notification,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_notifications(
        self,
        filters: Annotated[notification_models.NotificationFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.list_notifications(current_user, filters)

    async def unread_count(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return notification_models.UnreadCount(unread=await notification_service.unread_count(current_user))

    async def get_stats(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.get_stats(current_user)

    async def check_for_new(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> List[Any]:
        """
        Returns the newest unseen notifications and marks them as seen.
        """
        return await notification_service.check_for_new(current_user)

    async def mark_all_as_read(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        affected = await notification_service.mark_all_as_read(current_user)
        return notification_models.BulkActionResult(action="mark_read", affected=affected)

    async def bulk_action(
        self,
        action_data: notification_models.BulkNotificationAction,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.bulk_action(action_data, current_user)

    async def broadcast(
        self,
        send_data: notification_models.NotificationSend,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.broadcast(send_data, current_user)

    async def mark_as_read(
        self,
        notification_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.mark_as_read(notification_id, current_user)

    async def mark_as_unread(
        self,
        notification_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.mark_as_unread(notification_id, current_user)

    async def delete_notification(
        self,
        notification_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        await notification_service.delete_notification(notification_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
notifications_api = NotificationsAPI()
router = notifications_api.router
