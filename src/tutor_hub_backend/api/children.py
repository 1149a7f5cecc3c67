'''
API endpoints for Children.
'''
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, status, Response

from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import children as children_models
from ..services.security import RoleChecker, require_parent
from ..services.children_service import ChildrenService

require_child_reader = RoleChecker(UserRole.PARENT, UserRole.TEACHER, UserRole.ADMIN)


class ChildrenAPI:
    """
    Parents manage their own children; teachers can read the children they teach.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/children",
            tags=["Children"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_children,
                methods=["GET"],
                response_model=List[children_models.ChildRead])

        self.router.add_api_route(
                "/{child_id}",
                self.get_child,
                methods=["GET"],
                response_model=children_models.ChildRead)

        self.router.add_api_route(
                "/",
                self.create_child,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=children_models.ChildRead)

        self.router.add_api_route(
                "/{child_id}",
                self.update_child,
                methods=["PATCH"],
                response_model=children_models.ChildRead)

        self.router.add_api_route(
                "/{child_id}",
                self.delete_child,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_children(
        self,
        current_user: Annotated[db_models.Users, Depends(require_child_reader)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)]
    ) -> List[Any]:
        return await children_service.list_children_for_api(current_user)

    async def get_child(
        self,
        child_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_child_reader)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)]
    ) -> Any:
        return await children_service.get_child_for_api(child_id, current_user)

    async def create_child(
        self,
        child_data: children_models.ChildCreate,
        current_user: Annotated[db_models.Users, Depends(require_parent)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)]
    ) -> Any:
        return await children_service.create_child(child_data, current_user)

    async def update_child(
        self,
        child_id: UUID,
        child_data: children_models.ChildUpdate,
        current_user: Annotated[db_models.Users, Depends(require_parent)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)]
    ) -> Any:
        return await children_service.update_child(child_id, child_data, current_user)

    async def delete_child(
        self,
        child_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_parent)],
        children_service: Annotated[ChildrenService, Depends(ChildrenService)]
    ):
        await children_service.delete_child(child_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
children_api = ChildrenAPI()
router = children_api.router
