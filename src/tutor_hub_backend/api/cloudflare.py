'''
Admin endpoints proxying the Cloudflare D1 users table.
Worker failures are turned into 502 responses by the app's exception handler.
'''
from typing import Annotated, Any, List
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import cloudflare as cloudflare_models
from ..services.security import require_admin
from ..services.cloudflare_service import CloudflareD1Service, get_cloudflare_service

class CloudflareUsersAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/cloudflare/users",
            tags=["Cloudflare D1"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route("/", self.list_users, methods=["GET"])
        self.router.add_api_route("/{user_id}", self.get_user, methods=["GET"])
        self.router.add_api_route("/", self.create_user, methods=["POST"], status_code=status.HTTP_201_CREATED)
        self.router.add_api_route("/{user_id}", self.update_user, methods=["PUT"])
        self.router.add_api_route("/{user_id}", self.delete_user, methods=["DELETE"])

    async def list_users(
        self,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        d1_service: Annotated[CloudflareD1Service, Depends(get_cloudflare_service)]
    ) -> List[Any]:
        return await d1_service.get_all_users()

    async def get_user(
        self,
        user_id: int,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        d1_service: Annotated[CloudflareD1Service, Depends(get_cloudflare_service)]
    ) -> Any:
        return await d1_service.get_user_by_id(user_id)

    async def create_user(
        self,
        user_data: cloudflare_models.D1UserCreate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        d1_service: Annotated[CloudflareD1Service, Depends(get_cloudflare_service)]
    ) -> Any:
        return await d1_service.create_user(user_data.name, user_data.email)

    async def update_user(
        self,
        user_id: int,
        user_data: cloudflare_models.D1UserUpdate,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        d1_service: Annotated[CloudflareD1Service, Depends(get_cloudflare_service)]
    ) -> Any:
        return await d1_service.update_user(user_id, user_data.model_dump(exclude_unset=True))

    async def delete_user(
        self,
        user_id: int,
        current_user: Annotated[db_models.Users, Depends(require_admin)],
        d1_service: Annotated[CloudflareD1Service, Depends(get_cloudflare_service)]
    ) -> Any:
        return await d1_service.delete_user(user_id)

# Instantiate the class and export its router
cloudflare_users_api = CloudflareUsersAPI()
router = cloudflare_users_api.router
