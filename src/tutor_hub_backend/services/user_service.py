'''

'''
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TeacherProfileStatus, ClientProfileStatus
from ..common.logger import log
from ..common.security_utils import HashedPassword
from ..models import user as user_models
from ..models.common import Page
from .pagination import paginate, contains_pattern, LIKE_ESCAPE


def user_with_profiles():
    """Loader options that bring every profile (and what profile completion needs) along."""
    return (
        selectinload(db_models.Users.parent_profile).selectinload(db_models.ParentProfiles.children),
        selectinload(db_models.Users.teacher_profile).selectinload(db_models.TeacherProfiles.subjects),
        selectinload(db_models.Users.client_profile),
    )


class UserService:
    """
    Base service for user-related database operations.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> db_models.Users | None:
        """
        Fetches a user by ID with all profile relationships eager-loaded.
        """
        log.info(f"Fetching full user profile for ID: {user_id}")
        try:
            stmt = select(db_models.Users).options(*user_with_profiles()).filter(
                db_models.Users.id == user_id
            ).execution_options(populate_existing=True)
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching full user by ID {user_id}: {e}", exc_info=True)
            raise

    async def get_user_by_email(self, email: str) -> db_models.Users | None:
        log.info(f"Fetching full user profile for email: {email}")
        stmt = select(db_models.Users).options(*user_with_profiles()).filter(
            func.lower(db_models.Users.email) == email.lower()
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_user_by_login(self, login: str) -> db_models.Users | None:
        """Login accepts either the email address or the username."""
        stmt = select(db_models.Users).options(*user_with_profiles()).filter(
            or_(
                func.lower(db_models.Users.email) == login.lower(),
                db_models.Users.username == login
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def is_email_taken(self, email: str, exclude_user_id: UUID | None = None) -> bool:
        stmt = select(db_models.Users.id).filter(func.lower(db_models.Users.email) == email.lower())
        if exclude_user_id:
            stmt = stmt.filter(db_models.Users.id != exclude_user_id)
        return (await self.db.execute(stmt)).first() is not None

    async def is_username_taken(self, username: str, exclude_user_id: UUID | None = None) -> bool:
        stmt = select(db_models.Users.id).filter(db_models.Users.username == username)
        if exclude_user_id:
            stmt = stmt.filter(db_models.Users.id != exclude_user_id)
        return (await self.db.execute(stmt)).first() is not None

    @staticmethod
    def has_completed_profile(user: db_models.Users) -> bool:
        """
        Parents need a completed profile and at least one child.
        Teachers and clients need their profile marked complete. Admins have no profile.
        """
        if user.role == UserRole.ADMIN.value:
            return True
        if user.role == UserRole.PARENT.value:
            profile = user.parent_profile
            return bool(profile and profile.has_completed_profile and profile.children)
        if user.role == UserRole.TEACHER.value:
            return bool(user.teacher_profile and user.teacher_profile.has_completed_profile)
        if user.role == UserRole.CLIENT.value:
            return bool(user.client_profile and user.client_profile.has_completed_profile)
        return False

    async def create_user_with_profile(
        self,
        *,
        name: str,
        username: str,
        email: str,
        password: str,
        role: UserRole,
        timezone: str = "UTC",
        currency: str = "USD",
        subjects: Optional[list[db_models.Subjects]] = None,
    ) -> db_models.Users:
        """
        Creates the user row and the empty profile row that belongs to its role.
        Uniqueness is re-checked here so every caller gets the same 400.
        """
        if await self.is_email_taken(email):
            log.warning(f"Attempted to create user with existing email: {email}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered.")
        if await self.is_username_taken(username):
            log.warning(f"Attempted to create user with existing username: {username}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken.")

        user = db_models.Users(
            name=name,
            username=username,
            email=email.lower(),
            password=HashedPassword.get_hash(password),
            role=role.value,
            timezone=timezone,
            currency=currency,
            is_active=True,
        )
        if role == UserRole.PARENT:
            user.parent_profile = db_models.ParentProfiles()
        elif role == UserRole.TEACHER:
            user.teacher_profile = db_models.TeacherProfiles(
                status=TeacherProfileStatus.SUBMITTED.value, subjects=subjects or []
            )
        elif role == UserRole.CLIENT:
            user.client_profile = db_models.ClientProfiles(status=ClientProfileStatus.PENDING.value)

        self.db.add(user)
        await self.db.flush()
        log.info(f"Created {role.value} user {user.id} ({user.email}).")
        return user


class AdminUserService(UserService):
    """
    User management for administrators.
    """
    def _authorize(self, current_user: db_models.Users):
        if current_user.role != UserRole.ADMIN.value:
            log.warning(f"User {current_user.id} (role {current_user.role}) tried to manage users.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can manage users."
            )

    async def _get_user_internal(self, user_id: UUID) -> db_models.Users:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    async def list_users(
        self,
        current_user: db_models.Users,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
    ) -> Page[user_models.UserRead]:
        self._authorize(current_user)
        stmt = select(db_models.Users)
        if role:
            stmt = stmt.filter(db_models.Users.role == role.value)
        if is_active is not None:
            stmt = stmt.filter(db_models.Users.is_active == is_active)
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.filter(or_(
                func.lower(db_models.Users.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(db_models.Users.email).like(pattern, escape=LIKE_ESCAPE),
                func.lower(db_models.Users.username).like(pattern, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.order_by(db_models.Users.created_at.desc())
        return await paginate(self.db, stmt, page, user_models.UserRead)

    async def get_user_for_api(self, user_id: UUID, current_user: db_models.Users) -> user_models.UserRead:
        self._authorize(current_user)
        user = await self._get_user_internal(user_id)
        return user_models.UserRead.model_validate(user)

    async def create_user(
        self,
        user_data: user_models.AdminUserCreate,
        current_user: db_models.Users
    ) -> user_models.UserRead:
        self._authorize(current_user)
        user = await self.create_user_with_profile(
            name=user_data.name,
            username=user_data.username,
            email=user_data.email,
            password=user_data.password,
            role=user_data.role,
            timezone=user_data.timezone,
            currency=user_data.currency.upper(),
        )
        return user_models.UserRead.model_validate(user)

    async def update_user(
        self,
        user_id: UUID,
        update_data: user_models.AdminUserUpdate,
        current_user: db_models.Users
    ) -> user_models.UserRead:
        self._authorize(current_user)
        try:
            user = await self._get_user_internal(user_id)
            update_dict = update_data.model_dump(exclude_unset=True)

            if 'email' in update_dict and await self.is_email_taken(update_dict['email'], exclude_user_id=user.id):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered.")
            if 'username' in update_dict and await self.is_username_taken(update_dict['username'], exclude_user_id=user.id):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken.")
            if 'password' in update_dict:
                update_dict['password'] = HashedPassword.get_hash(update_dict['password'])
            if 'currency' in update_dict:
                update_dict['currency'] = update_dict['currency'].upper()
            if user.id == current_user.id and update_dict.get('is_active') is False:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account.")

            for key, value in update_dict.items():
                setattr(user, key, value)

            await self.db.flush()
            user = await self._get_user_internal(user_id)
            log.info(f"Admin {current_user.id} updated user {user_id}.")
            return user_models.UserRead.model_validate(user)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating user {user_id}: {e}", exc_info=True)
            raise

    async def delete_user(self, user_id: UUID, current_user: db_models.Users) -> None:
        self._authorize(current_user)
        if user_id == current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account.")
        try:
            user = await self._get_user_internal(user_id)
            await self.db.delete(user)
            await self.db.flush()
            log.info(f"Admin {current_user.id} deleted user {user_id}.")
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error deleting user {user_id}: {e}", exc_info=True)
            raise
