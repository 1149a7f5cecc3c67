'''
API endpoint for the caller's role-specific dashboard.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends

from ..database import models as db_models
from ..models import dashboard as dashboard_models
from ..services.security import require_any_profiled
from ..services.dashboard_service import DashboardService

class DashboardAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/dashboard",
            tags=["Dashboard"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.get_dashboard,
                methods=["GET"],
                response_model=dashboard_models.DashboardRead,
                response_model_exclude_none=True)

    async def get_dashboard(
        self,
        current_user: Annotated[db_models.Users, Depends(require_any_profiled)],
        dashboard_service: Annotated[DashboardService, Depends(DashboardService)]
    ) -> Any:
        return await dashboard_service.get_dashboard(current_user)

# Instantiate the class and export its router
dashboard_api = DashboardAPI()
router = dashboard_api.router
