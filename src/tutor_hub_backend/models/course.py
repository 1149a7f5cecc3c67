'''

'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import CourseStatus
from .subject import SubjectRead


class CourseBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    level: Optional[str] = Field(None, max_length=50)
    duration: Optional[str] = Field(None, max_length=50)
    price: Decimal = Field(Decimal('0'), ge=0, decimal_places=2)
    status: CourseStatus = CourseStatus.DRAFT
    curriculum: list[dict] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    learning_outcomes: list[str] = Field(default_factory=list)
    max_students: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    cover_image: Optional[str] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("The end date must not be before the start date.")
        return self


class CourseCreate(CourseBase):
    subject_id: UUID


class CourseUpdate(BaseModel):
    """
    All fields are optional to allow for partial updates (PATCH).
    """
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    subject_id: Optional[UUID] = None
    description: Optional[str] = None
    level: Optional[str] = Field(None, max_length=50)
    duration: Optional[str] = Field(None, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    status: Optional[CourseStatus] = None
    curriculum: Optional[list[dict]] = None
    prerequisites: Optional[list[str]] = None
    learning_outcomes: Optional[list[str]] = None
    max_students: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    cover_image: Optional[str] = None


class CourseRead(CourseBase):
    id: UUID
    slug: str
    teacher_profile_id: UUID
    subject: SubjectRead
    curriculum: Optional[list[dict]] = None
    prerequisites: Optional[list[str]] = None
    learning_outcomes: Optional[list[str]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
