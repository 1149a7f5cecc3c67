'''
API endpoints for teaching Materials.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status, Response
from pydantic import ValidationError
from fastapi.exceptions import RequestValidationError

from ..database import models as db_models
from ..database.db_enums import MaterialType
from ..models import material as material_models
from ..models.common import Page
from ..services.security import require_any_profiled, require_teacher
from ..services.material_service import MaterialService

class MaterialsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/materials",
            tags=["Materials"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_materials,
                methods=["GET"],
                response_model=Page[material_models.MaterialRead])

        self.router.add_api_route(
                "/",
                self.create_material,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=material_models.MaterialRead)

        self.router.add_api_route(
                "/{material_id}",
                self.get_material,
                methods=["GET"],
                response_model=material_models.MaterialRead)

        self.router.add_api_route(
                "/{material_id}/download",
                self.download_material,
                methods=["GET"])

        self.router.add_api_route(
                "/{material_id}",
                self.update_material,
                methods=["PATCH"],
                response_model=material_models.MaterialRead)

        self.router.add_api_route(
                "/{material_id}/file",
                self.replace_file,
                methods=["POST"],
                response_model=material_models.MaterialRead)

        self.router.add_api_route(
                "/{material_id}",
                self.delete_material,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_materials(
        self,
        filters: Annotated[material_models.MaterialFilters, Query()],
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ) -> Any:
        return await material_service.list_materials(current_user, filters)

    async def create_material(
        self,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        material_service: Annotated[MaterialService, Depends(MaterialService)],
        title: Annotated[str, Form()],
        type: Annotated[MaterialType, Form()],
        description: Annotated[Optional[str], Form()] = None,
        external_url: Annotated[Optional[str], Form()] = None,
        is_public: Annotated[bool, Form()] = False,
        is_featured: Annotated[bool, Form()] = False,
        subject_ids: Annotated[Optional[list[UUID]], Form()] = None,
        course_ids: Annotated[Optional[list[UUID]], Form()] = None,
        file: Annotated[Optional[UploadFile], File()] = None
    ) -> Any:
        """Multipart form: the material's fields plus the file (links send external_url instead)."""
        try:
            material_data = material_models.MaterialCreate(
                title=title,
                type=type,
                description=description,
                external_url=external_url,
                is_public=is_public,
                is_featured=is_featured,
                subject_ids=subject_ids or [],
                course_ids=course_ids or [],
            )
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False, include_context=False))
        return await material_service.create_material(material_data, current_user, file)

    async def get_material(
        self,
        material_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ) -> Any:
        return await material_service.get_material(material_id, current_user)

    async def download_material(
        self,
        material_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        return await material_service.download_material(material_id, current_user)

    async def update_material(
        self,
        material_id: UUID,
        material_data: material_models.MaterialUpdate,
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ) -> Any:
        return await material_service.update_material(material_id, material_data, current_user)

    async def replace_file(
        self,
        material_id: UUID,
        file: Annotated[UploadFile, File()],
        current_user: Annotated[db_models.Users, Depends(require_teacher)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ) -> Any:
        return await material_service.replace_file(material_id, file, current_user)

    async def delete_material(
        self,
        material_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        material_service: Annotated[MaterialService, Depends(MaterialService)]
    ):
        await material_service.delete_material(material_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
materials_api = MaterialsAPI()
router = materials_api.router
