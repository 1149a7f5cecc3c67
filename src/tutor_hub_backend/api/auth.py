'''
API endpoints for Authentication: login, the registration wizard and the current user.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Body, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm

from ..database import models as db_models
from ..services.auth_service import LoginService, RegistrationService
from ..services.security import verify_token_and_get_user
from ..models import token as token_models
from ..models import user as user_models
from ..models.common import WizardStepResult
from ..common.logger import log

class AuthRoutes:
    """
    A class to encapsulate all authentication and registration endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/login",
            self.login_for_access_token,
            methods=["POST"],
            response_model=token_models.Token,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/register/steps/{step}",
            self.validate_registration_step,
            methods=["POST"],
            response_model=WizardStepResult,
            summary="Validate one registration step"
        )
        self.router.add_api_route(
            "/register",
            self.register,
            methods=["POST"],
            response_model=user_models.RegistrationResult,
            status_code=status.HTTP_201_CREATED,
            summary="Register"
        )
        self.router.add_api_route(
            "/me",
            self.read_current_user,
            methods=["GET"],
            response_model=user_models.CurrentUserRead,
            summary="Current user"
        )

    async def login_for_access_token(
        self,
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Authenticates a user and returns an access token.
        The `username` form field accepts either the username or the email.
        """
        try:
            token = await login_service.login_user(form_data)
            return token
        except HTTPException as e:
            raise e
        except Exception as e:
            log.error(f"Unexpected error during login: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal server error occurred during login.",
            )

    async def validate_registration_step(
        self,
        step: int,
        data: Annotated[dict[str, Any], Body()],
        registration_service: Annotated[RegistrationService, Depends(RegistrationService)]
    ):
        """
        Validates a single wizard step. Returns the next step, or 422 with field errors.
        """
        return await registration_service.validate_step(step, data)

    async def register(
        self,
        registration_data: user_models.RegistrationCreate,
        request: Request,
        registration_service: Annotated[RegistrationService, Depends(RegistrationService)]
    ):
        """
        Creates the account once every step is valid.
        Timezone and currency are determined automatically from the request IP.
        """
        client_ip = request.client.host if request.client else None
        return await registration_service.register(registration_data, ip_address=client_ip)

    async def read_current_user(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        return LoginService.current_user_for_api(current_user)

# Create an instance of the class and export its router
auth_routes = AuthRoutes()
router = auth_routes.router
