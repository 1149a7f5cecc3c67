'''
Pydantic models for the role profiles and their setup wizards.
'''
from datetime import date, time
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..database.db_enums import TeacherProfileStatus, ClientProfileStatus
from .children import ChildCreate
from .subject import SubjectRead

PHONE_PATTERN = r'^\+?[0-9 ()-]{6,20}$'


# --- Parent ---

class EmergencyContact(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    relationship: str = Field(..., min_length=2, max_length=50)

class ParentContactStep(BaseModel):
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    address: str = Field(..., min_length=5)
    number_of_children: int = Field(..., ge=1, le=20)
    additional_information: Optional[str] = None
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)

class ParentChildrenStep(BaseModel):
    children: list[ChildCreate] = Field(..., min_length=1)

class ParentPreferencesStep(BaseModel):
    notification_preferences: dict[str, bool] = Field(default_factory=lambda: {"email": True, "sms": False})
    newsletter_subscription: bool = False
    privacy_settings: dict[str, bool] = Field(default_factory=lambda: {"show_profile": False})

class ParentProfileSetup(ParentContactStep, ParentChildrenStep, ParentPreferencesStep):
    """All three parent wizard steps, submitted together on completion."""
    pass

class ParentPreferencesUpdate(BaseModel):
    notification_preferences: Optional[dict[str, bool]] = None
    newsletter_subscription: Optional[bool] = None
    privacy_settings: Optional[dict[str, bool]] = None

class ParentProfileRead(BaseModel):
    id: UUID
    user_id: UUID
    phone_number: Optional[str] = None
    address: Optional[str] = None
    number_of_children: Optional[int] = None
    additional_information: Optional[str] = None
    emergency_contacts: Optional[list[EmergencyContact]] = None
    has_completed_profile: bool
    newsletter_subscription: bool
    notification_preferences: Optional[dict] = None
    privacy_settings: Optional[dict] = None

    model_config = ConfigDict(from_attributes=True)


# --- Teacher ---

class EducationEntry(BaseModel):
    degree: str = Field(..., min_length=2)
    institution: str = Field(..., min_length=2)
    year: Optional[int] = Field(None, ge=1950, le=2100)

class TeacherPersonalStep(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    whatsapp: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    fix_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    date_of_birth: date
    place_of_birth: str = Field(..., min_length=2, max_length=255)
    bio: Optional[str] = Field(None, max_length=2000)

class TeacherEducationStep(BaseModel):
    education: list[EducationEntry] = Field(..., min_length=1)
    subject_ids: list[UUID] = Field(..., min_length=1)

class TeacherAvailabilityStep(BaseModel):
    available_days: list[int] = Field(..., min_length=1)
    available_time_start: time = time(8, 0)
    available_time_end: time = time(18, 0)
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    @field_validator('available_days')
    @classmethod
    def check_days(cls, days: list[int]) -> list[int]:
        if any(day < 1 or day > 7 for day in days):
            raise ValueError("Days must be ISO weekdays between 1 (Monday) and 7 (Sunday).")
        return sorted(set(days))

    @model_validator(mode='after')
    def check_window(self):
        if self.available_time_start >= self.available_time_end:
            raise ValueError("The availability window must start before it ends.")
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("A break needs both a start and an end.")
        if self.break_start is not None:
            if not (self.available_time_start <= self.break_start < self.break_end <= self.available_time_end):
                raise ValueError("The break must fall inside the availability window.")
        return self

class TeacherProfileSetup(TeacherPersonalStep, TeacherEducationStep, TeacherAvailabilityStep):
    pass

class TeacherProfileRead(BaseModel):
    id: UUID
    user_id: UUID
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    fix_number: Optional[str] = None
    photo: Optional[str] = None
    date_of_birth: Optional[date] = None
    place_of_birth: Optional[str] = None
    bio: Optional[str] = None
    education: Optional[list] = None
    status: TeacherProfileStatus
    has_completed_profile: bool
    available_days: str
    available_time_start: time
    available_time_end: time
    break_start: Optional[time] = None
    break_end: Optional[time] = None
    subjects: list[SubjectRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

class TeacherStatusUpdate(BaseModel):
    status: TeacherProfileStatus


# --- Client ---

class ClientCompanyStep(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=255)
    position: str = Field(..., min_length=2, max_length=255)
    industry: str = Field(..., min_length=2, max_length=100)
    company_size: Literal['1-10', '11-50', '51-200', '201-500', '500+']

class ClientContactStep(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    whatsapp: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    website: Optional[str] = Field(None, max_length=255)
    address: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2, max_length=100)
    country: str = Field(..., min_length=2, max_length=100)
    preferred_contact_method: Literal['email', 'phone', 'whatsapp'] = 'email'

class ClientServicesStep(BaseModel):
    preferred_services: list[str] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=2000)

class ClientProfileSetup(ClientCompanyStep, ClientContactStep, ClientServicesStep):
    pass

class ClientProfileRead(BaseModel):
    id: UUID
    user_id: UUID
    company_name: Optional[str] = None
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    position: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    preferred_services: Optional[list[str]] = None
    preferred_contact_method: Optional[str] = None
    notes: Optional[str] = None
    logo: Optional[str] = None
    status: ClientProfileStatus
    has_completed_profile: bool

    model_config = ConfigDict(from_attributes=True)

class ClientStatusUpdate(BaseModel):
    status: ClientProfileStatus


class ProfileRead(BaseModel):
    """The caller's own profile, whichever role it belongs to."""
    role: str
    profile_completed: bool
    parent_profile: Optional[ParentProfileRead] = None
    teacher_profile: Optional[TeacherProfileRead] = None
    client_profile: Optional[ClientProfileRead] = None
