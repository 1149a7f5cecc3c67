'''
Pydantic models for assessments, their questions, assignments and submissions.
'''
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import AssessmentType, AssessmentStatus, QuestionType, SubmissionStatus


# --- Questions ---

class QuestionBase(BaseModel):
    question: str = Field(..., min_length=3)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: Optional[list[str]] = None
    correct_answer: Optional[str] = None
    points: int = Field(1, ge=1, le=100)
    order: Optional[int] = Field(None, ge=0)
    metadata: Optional[dict] = None

    @model_validator(mode='after')
    def check_answer_shape(self):
        if self.type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                raise ValueError("Multiple choice questions need at least two options.")
            if self.correct_answer is None or self.correct_answer not in self.options:
                raise ValueError("The correct answer must be one of the options.")
        elif self.type == QuestionType.TRUE_FALSE:
            if self.correct_answer is None or self.correct_answer.lower() not in ('true', 'false'):
                raise ValueError("True/false questions need 'true' or 'false' as the answer.")
        return self

class QuestionCreate(QuestionBase):
    pass

class QuestionUpdate(BaseModel):
    """
    Partial update. The merged question is re-validated by the service.
    """
    question: Optional[str] = Field(None, min_length=3)
    type: Optional[QuestionType] = None
    options: Optional[list[str]] = None
    correct_answer: Optional[str] = None
    points: Optional[int] = Field(None, ge=1, le=100)
    order: Optional[int] = Field(None, ge=0)
    metadata: Optional[dict] = None

class QuestionRead(BaseModel):
    id: UUID
    question: str
    type: QuestionType
    options: Optional[list[str]] = None
    correct_answer: Optional[str] = None
    points: int
    order: int
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices('extra_data', 'metadata'))

    model_config = ConfigDict(from_attributes=True)


# --- Assessments ---

class AssessmentBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    type: AssessmentType = AssessmentType.QUIZ
    passing_points: Optional[int] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    time_limit: Optional[int] = Field(None, ge=1, description="Minutes")
    settings: Optional[dict] = None
    instructions: Optional[str] = None

class AssessmentCreate(AssessmentBase):
    course_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    questions: list[QuestionCreate] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_dates(self):
        if self.start_date and self.due_date and self.due_date <= self.start_date:
            raise ValueError("The due date must be after the start date.")
        return self

class AssessmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    type: Optional[AssessmentType] = None
    course_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    passing_points: Optional[int] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    time_limit: Optional[int] = Field(None, ge=1)
    settings: Optional[dict] = None
    instructions: Optional[str] = None
    status: Optional[AssessmentStatus] = None

class AssessmentRead(AssessmentBase):
    id: UUID
    teacher_profile_id: UUID
    course_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    total_points: int
    is_published: bool
    status: AssessmentStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class AssessmentDetail(AssessmentRead):
    questions: list[QuestionRead] = Field(default_factory=list)

class ParticipantQuestionRead(BaseModel):
    """A question as shown to the person taking the assessment (no answer key)."""
    id: UUID
    question: str
    type: QuestionType
    options: Optional[list[str]] = None
    points: int
    order: int

    model_config = ConfigDict(from_attributes=True)

class AssessmentParticipantView(AssessmentRead):
    questions: list[ParticipantQuestionRead] = Field(default_factory=list)
    assignment_status: Optional[SubmissionStatus] = None
    score: Optional[int] = None


# --- Assignment (pivot) ---

class AssessmentAssign(BaseModel):
    children_ids: list[UUID] = Field(default_factory=list)
    client_profile_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_not_empty(self):
        if not self.children_ids and not self.client_profile_ids:
            raise ValueError("Pick at least one child or client.")
        return self

class AssignmentRead(BaseModel):
    assessment_id: UUID
    children_id: Optional[UUID] = None
    client_profile_id: Optional[UUID] = None
    status: SubmissionStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    score: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class AssignResult(BaseModel):
    assigned_children: int
    assigned_clients: int


# --- Submissions ---

class ParticipantRef(BaseModel):
    """Exactly one of children_id / client_profile_id."""
    children_id: Optional[UUID] = None
    client_profile_id: Optional[UUID] = None

    @model_validator(mode='after')
    def check_single_participant(self):
        if (self.children_id is None) == (self.client_profile_id is None):
            raise ValueError("Give exactly one of children_id or client_profile_id.")
        return self

class SubmissionCreate(ParticipantRef):
    answers: dict[str, Any] = Field(default_factory=dict, description="question id -> answer")

class SubmissionGrade(BaseModel):
    score: int = Field(..., ge=0)
    feedback: dict[str, str] = Field(default_factory=dict, description="question id (or 'general') -> comment")

class SubmissionRead(BaseModel):
    id: UUID
    assessment_id: UUID
    children_id: Optional[UUID] = None
    client_profile_id: Optional[UUID] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    score: Optional[int] = None
    status: SubmissionStatus
    answers: Optional[dict] = None
    feedback: Optional[dict] = None
    graded_by: Optional[UUID] = None
    graded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AssessmentReport(BaseModel):
    assessment_id: UUID
    total_points: int
    passing_points: Optional[int] = None
    assigned: int
    started: int
    completed: int
    graded: int
    average_score: Optional[Decimal] = None
    pass_rate: Optional[Decimal] = None
