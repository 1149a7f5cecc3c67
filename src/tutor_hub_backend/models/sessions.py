'''
Pydantic models for learning sessions and the schedule views.
'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import SessionStatus
from .subject import SubjectRead
from .user import UserLean


class SessionCreate(BaseModel):
    """
    Payload for scheduling a session. Times may carry any UTC offset;
    naive times are read as UTC.
    """
    children_id: UUID
    teacher_id: UUID
    subject_id: UUID
    course_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)

    @model_validator(mode='after')
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("The end time must be after the start time.")
        return self


class SessionComplete(BaseModel):
    attended: bool = True
    performance_score: Optional[int] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    recording_url: Optional[str] = None


class ChildLean(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class SessionRead(BaseModel):
    id: UUID
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: SessionStatus
    attended: bool
    performance_score: Optional[int] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    recording_url: Optional[str] = None
    course_id: Optional[UUID] = None
    teacher: UserLean
    child: ChildLean
    subject: SubjectRead

    model_config = ConfigDict(from_attributes=True)


class SessionFilters(BaseModel):
    status: Optional[SessionStatus] = None
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    children_id: Optional[UUID] = None
    attended: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_field: Literal['start_time', 'end_time', 'status', 'created_at'] = 'start_time'
    sort_direction: Literal['asc', 'desc'] = 'desc'
    page: int = Field(1, ge=1)


class SessionStats(BaseModel):
    total_sessions: int
    completed_sessions: int
    upcoming_sessions: int
    total_subjects: int
    average_performance: Optional[Decimal] = None


class CalendarDay(BaseModel):
    date: date
    sessions: list[SessionRead] = Field(default_factory=list)


class CalendarView(BaseModel):
    view: Literal['day', 'week', 'month']
    start_date: date
    end_date: date
    days: list[CalendarDay] = Field(default_factory=list)
