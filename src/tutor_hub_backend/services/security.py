'''
JWT handling, the bearer-token dependency and role-based access guards.
'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..common.logger import log
from ..core.navigation import dashboard_path, profile_setup_path
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models.token import TokenPayload
from .user_service import UserService

# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # Pydantic validation errors are ValueErrors
            log.warning(f"JWT decode/validation error: {e}")
            return None

# --- JWT Verification Dependency Function ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

async def verify_token_and_get_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users:
    """
    Dependency that verifies the JWT and returns the user with profiles loaded.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        raise credentials_exception

    try:
        user_id = UUID(token_data.sub)
    except ValueError:
        log.warning(f"JWT subject '{token_data.sub}' is not a user id.")
        raise credentials_exception

    user = await user_service.get_user_by_id(user_id)

    if user is None:
        log.warning(f"User '{token_data.sub}' not found during token verification.")
        raise credentials_exception

    if not user.is_active:
        log.warning(f"User '{token_data.sub}' is not active.")
        raise credentials_exception

    log.info(f"JWT verified successfully for user: {user.email} (Role: {user.role})")
    return user


class RoleChecker:
    """
    Dependency guarding routes by role.
    A user with the wrong role is pointed at their own dashboard; a user whose
    profile is incomplete is pointed at profile setup (unless the route is part
    of profile setup, which passes require_profile=False).
    The target path travels in the X-Redirect-To header.
    """
    def __init__(self, *roles: UserRole, require_profile: bool = True):
        self.roles = {role.value for role in roles}
        self.require_profile = require_profile

    async def __call__(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ) -> db_models.Users:
        if self.roles and current_user.role not in self.roles:
            log.warning(f"User {current_user.id} ({current_user.role}) denied; route needs {sorted(self.roles)}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this resource.",
                headers={"X-Redirect-To": dashboard_path(current_user.role)},
            )
        if self.require_profile and not UserService.has_completed_profile(current_user):
            log.info(f"User {current_user.id} has not completed their profile.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Please complete your profile first.",
                headers={"X-Redirect-To": profile_setup_path(current_user.role)},
            )
        return current_user


# Shared guards
require_admin = RoleChecker(UserRole.ADMIN)
require_parent = RoleChecker(UserRole.PARENT)
require_teacher = RoleChecker(UserRole.TEACHER)
require_client = RoleChecker(UserRole.CLIENT)
require_any_profiled = RoleChecker()
