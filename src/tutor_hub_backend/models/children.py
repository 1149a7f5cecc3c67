'''

'''
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import GenderEnum, AvailabilitySlot
from .subject import SubjectRead


class ChildBase(BaseModel):
    """
    Common fields for a child. Either an age (3-18) or a date of birth is required.
    """
    name: str = Field(..., min_length=2, max_length=255)
    gender: GenderEnum
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(None, ge=3, le=18)
    school_name: str = Field(..., min_length=2, max_length=255)
    grade: str = Field(..., min_length=1, max_length=50)
    available_times: list[AvailabilitySlot] = Field(..., min_length=1)

    @model_validator(mode='after')
    def check_age_or_birth_date(self):
        if self.age is None and self.date_of_birth is None:
            raise ValueError("Either an age or a date of birth is required.")
        return self


class ChildCreate(ChildBase):
    """
    Payload for adding a child. The parent profile is taken from the caller.
    """
    subject_ids: list[UUID] = Field(..., min_length=1)


class ChildUpdate(BaseModel):
    """
    All fields are optional to allow for partial updates (PATCH).
    """
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    gender: Optional[GenderEnum] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(None, ge=3, le=18)
    school_name: Optional[str] = Field(None, min_length=2, max_length=255)
    grade: Optional[str] = Field(None, min_length=1, max_length=50)
    available_times: Optional[list[AvailabilitySlot]] = Field(None, min_length=1)
    subject_ids: Optional[list[UUID]] = Field(None, min_length=1)
    teacher_id: Optional[UUID] = None


class ChildRead(ChildBase):
    id: UUID
    parent_profile_id: UUID
    teacher_id: Optional[UUID] = None
    last_session_at: Optional[datetime] = None
    subjects: list[SubjectRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
