'''
Pydantic models for homework, its attachments and the parent progress views.
'''
from datetime import date, datetime
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import HomeworkStatusFilter
from ..common.time_utils import utcnow
from ..core.homework import is_overdue, homework_progress
from .sessions import ChildLean
from .subject import SubjectRead
from .user import UserLean

HomeworkDateRange = Literal['today', 'this_week', 'next_week', 'this_month']


class HomeworkCreate(BaseModel):
    children_id: UUID
    subject_id: Optional[UUID] = None
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    due_date: datetime
    max_score: Optional[int] = Field(None, ge=1)


class HomeworkUpdate(BaseModel):
    """
    All fields are optional to allow for partial updates (PATCH).
    """
    subject_id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: Optional[int] = Field(None, ge=1)


class HomeworkGrade(BaseModel):
    achieved_score: int = Field(..., ge=0)
    teacher_feedback: Optional[str] = Field(None, max_length=5000)


class HomeworkAttachmentRead(BaseModel):
    id: UUID
    user_id: UUID
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HomeworkRead(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    due_date: datetime
    is_completed: bool
    completed_at: Optional[datetime] = None
    max_score: Optional[int] = None
    achieved_score: Optional[int] = None
    teacher_feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    created_at: datetime
    child: ChildLean
    subject: Optional[SubjectRead] = None
    teacher: Optional[UserLean] = None
    attachments: list[HomeworkAttachmentRead] = Field(default_factory=list)
    is_overdue: bool = False
    progress: int = 0

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode='after')
    def derive_status(self):
        now = utcnow()
        self.is_overdue = is_overdue(self.due_date, self.is_completed, now)
        self.progress = homework_progress(self.created_at, self.due_date, now, self.is_completed)
        return self


class HomeworkFilters(BaseModel):
    child_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    status: HomeworkStatusFilter = HomeworkStatusFilter.ALL
    search: Optional[str] = None
    date_range: Optional[HomeworkDateRange] = None
    sort_field: Literal['due_date', 'created_at', 'title'] = 'due_date'
    sort_direction: Literal['asc', 'desc'] = 'asc'
    page: int = Field(1, ge=1)


class HomeworkProgress(BaseModel):
    total: int
    completed: int
    pending: int
    overdue: int
    percentage: int


class SubjectHomeworkStats(BaseModel):
    subject_id: UUID
    subject_name: str
    total: int
    completed: int
    percentage: int


class HomeworkDay(BaseModel):
    date: date
    homework: list[HomeworkRead] = Field(default_factory=list)


class WeeklyHomework(BaseModel):
    start_date: date
    end_date: date
    days: list[HomeworkDay] = Field(default_factory=list)


class HomeworkOverview(BaseModel):
    progress: HomeworkProgress
    subjects: list[SubjectHomeworkStats] = Field(default_factory=list)
    week: WeeklyHomework
