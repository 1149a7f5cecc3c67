'''
Login, the registration wizard and the current-user endpoint.
'''
from typing import Annotated, Any
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select

from .security import JWTHandler
from .user_service import UserService
from .geo_service import GeoService
from .notification_service import NotificationService
from ..common.security_utils import HashedPassword
from ..common.exceptions import WizardValidationError
from ..core.wizard import Wizard
from ..core.navigation import LOGIN_PATH, redirect_path_for
from ..database import models as db_models
from ..database.db_enums import UserRole, NotificationType
from ..models import token as token_models
from ..models import user as user_models
from ..models.common import WizardStepResult
from ..common.logger import log

registration_wizard = Wizard(
    "Registration",
    [
        user_models.RegisterAccountStep,
        user_models.RegisterCredentialsStep,
        user_models.RegisterReviewStep,
    ],
)


class LoginService:
    """
    Service for handling user login and authentication.
    Depends on the UserService to fetch user data.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.user_service = user_service

    async def login_user(self, form_data: OAuth2PasswordRequestForm) -> token_models.Token:
        log.info(f"Attempting login for user: {form_data.username}")

        user = await self.user_service.get_user_by_login(form_data.username)

        if not user or not HashedPassword.verify(form_data.password, user.password):
            log.warning(f"Login failed for user: {form_data.username} - Incorrect credentials")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email/username or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            log.warning(f"Login failed for user: {form_data.username} - User is inactive.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inactive user."
            )

        access_token = JWTHandler.create_access_token(subject=str(user.id))
        redirect_to = redirect_path_for(user.role, UserService.has_completed_profile(user))
        log.info(f"Login successful for user: {form_data.username}, redirecting to {redirect_to}")

        return token_models.Token(access_token=access_token, token_type="bearer", redirect_to=redirect_to)

    @staticmethod
    def current_user_for_api(current_user: db_models.Users) -> user_models.CurrentUserRead:
        completed = UserService.has_completed_profile(current_user)
        return user_models.CurrentUserRead(
            user=user_models.UserRead.model_validate(current_user),
            profile_completed=completed,
            redirect_to=redirect_path_for(current_user.role, completed),
        )


class RegistrationService:
    """
    Drives the three-step registration wizard.
    Steps are validated by their pydantic models; uniqueness of the email and
    username is checked against the database on step 1 and again on submit.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        geo_service: Annotated[GeoService, Depends(GeoService)]
    ):
        self.user_service = user_service
        self.notification_service = notification_service
        self.geo_service = geo_service
        self.db = user_service.db

    async def _check_unique(self, step: int, account: user_models.RegisterAccountStep):
        errors: dict[str, list[str]] = {}
        if await self.user_service.is_email_taken(account.email):
            errors["email"] = ["This email is already registered."]
        if await self.user_service.is_username_taken(account.username):
            errors["username"] = ["This username is already taken."]
        if errors:
            log.info(f"Registration step {step} rejected: {sorted(errors)} already in use.")
            raise WizardValidationError(step, errors)

    async def _check_subjects(self, step: int, subject_ids: list) -> list[db_models.Subjects]:
        if not subject_ids:
            return []
        result = await self.db.execute(
            select(db_models.Subjects).filter(
                db_models.Subjects.id.in_(subject_ids), db_models.Subjects.is_active.is_(True)
            )
        )
        subjects = list(result.scalars().all())
        if len(subjects) != len(set(subject_ids)):
            raise WizardValidationError(step, {"subject_ids": ["One or more subjects do not exist."]})
        return subjects

    async def validate_step(self, step: int, data: dict[str, Any]) -> WizardStepResult:
        """Validates a single step and tells the client which step comes next."""
        validated = registration_wizard.validate_step(step, data)
        if step == 1:
            await self._check_unique(step, validated)
        if step == 3:
            await self._check_subjects(step, validated.subject_ids)

        next_step = registration_wizard.next_step(step)
        return WizardStepResult(step=step, next_step=next_step, is_last=next_step is None)

    async def register(
        self,
        data: user_models.RegistrationCreate,
        ip_address: str | None = None
    ) -> user_models.RegistrationResult:
        """
        Re-validates every step, then creates the user, its profile row and the
        welcome notification. Timezone and currency come from the caller's IP.
        """
        try:
            account, credentials, review = registration_wizard.validate_all(data.model_dump())
            await self._check_unique(1, account)
            subjects = []
            if credentials.role == UserRole.TEACHER:
                subjects = await self._check_subjects(3, review.subject_ids)

            location = await self.geo_service.get_location_info(ip_address)

            user = await self.user_service.create_user_with_profile(
                name=account.name,
                username=account.username,
                email=account.email,
                password=credentials.password,
                role=credentials.role,
                timezone=location["timezone"],
                currency=location["currency"],
                subjects=subjects,
            )

            await self.notification_service.send_to_user(
                user.id,
                NotificationType.SYSTEM,
                "Welcome to TutorHub",
                f"Hi {user.name}, your {credentials.role.value} account is ready. "
                "Log in to complete your profile.",
                action_text="Log in",
                action_url=LOGIN_PATH,
            )
            log.info(f"Registered new {credentials.role.value} {user.id} from IP {ip_address}.")
            return user_models.RegistrationResult(
                user=user_models.UserRead.model_validate(user),
                redirect_to=LOGIN_PATH,
            )
        except (HTTPException, WizardValidationError):
            raise
        except Exception as e:
            log.error(f"Registration failed for {data.email}: {e}", exc_info=True)
            raise
