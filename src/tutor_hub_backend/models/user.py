from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from ..database.db_enums import UserRole

USERNAME_PATTERN = r'^[A-Za-z0-9_.-]+$'

# --- User API Read Models ---

class UserRead(BaseModel):
    """
    Base Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    id: UUID
    name: str
    username: str
    email: str
    role: UserRole
    timezone: str
    currency: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UserLean(BaseModel):
    """Small user shape embedded inside other resources."""
    id: UUID
    name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)

class CurrentUserRead(BaseModel):
    """The authenticated user plus where the frontend should send them."""
    user: UserRead
    profile_completed: bool
    redirect_to: str


# --- Registration wizard steps ---

class RegisterAccountStep(BaseModel):
    """Step 1: who the user is."""
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr

class RegisterCredentialsStep(BaseModel):
    """Step 2: password and the role the account is opened for."""
    password: str = Field(..., min_length=8, max_length=128)
    password_confirmation: str
    role: UserRole

    @model_validator(mode='after')
    def check_password_and_role(self) -> 'RegisterCredentialsStep':
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        if self.role == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered.")
        return self

class RegisterReviewStep(BaseModel):
    """Step 3: review. Teachers may pick the subjects they teach up front."""
    subject_ids: list[UUID] = Field(default_factory=list)
    terms_accepted: bool

    @model_validator(mode='after')
    def check_terms(self) -> 'RegisterReviewStep':
        if not self.terms_accepted:
            raise ValueError("You must accept the terms to register.")
        return self

class RegistrationCreate(BaseModel):
    """
    The full registration payload sent on the final step.
    Each part is re-validated through the step models by the service.
    """
    name: str
    username: str
    email: str
    password: str
    password_confirmation: str
    role: UserRole
    subject_ids: list[UUID] = Field(default_factory=list)
    terms_accepted: bool = False

class RegistrationResult(BaseModel):
    user: UserRead
    redirect_to: str


# --- Admin management ---

class AdminUserCreate(BaseModel):
    """
    Pydantic model for validating the payload when an ADMIN creates a user of any role.
    """
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole
    timezone: str = "UTC"
    currency: str = Field("USD", min_length=3, max_length=3)

class AdminUserUpdate(BaseModel):
    """
    All fields are optional to allow for partial updates (PATCH).
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    timezone: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_active: Optional[bool] = None
