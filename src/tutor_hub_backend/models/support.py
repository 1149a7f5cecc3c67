'''
Pydantic models for support tickets, their messages and attachments.
'''
from datetime import datetime
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..database.db_enums import TicketCategory, TicketPriority, TicketStatus, MessageType


# --- Ticket wizard steps ---

class TicketSummaryStep(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    category: TicketCategory
    priority: TicketPriority = TicketPriority.MEDIUM

class TicketDetailsStep(BaseModel):
    description: str = Field(..., min_length=20, max_length=5000)
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[str] = Field(None, max_length=64)

class TicketConfirmStep(BaseModel):
    confirmed: bool = Field(..., description="Must be true to submit.")

    @field_validator('confirmed')
    @classmethod
    def must_confirm(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Please confirm the ticket details.")
        return value

class TicketCreate(TicketSummaryStep, TicketDetailsStep):
    pass


class AttachmentRead(BaseModel):
    id: UUID
    message_id: Optional[UUID] = None
    file_name: str
    file_type: str
    file_size: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class MessageCreate(BaseModel):
    message: str = Field(..., min_length=5, max_length=5000)
    is_internal: bool = False

class MessageRead(BaseModel):
    id: UUID
    user_id: UUID
    admin_id: Optional[UUID] = None
    message: str
    message_type: MessageType
    is_internal: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketRead(BaseModel):
    id: UUID
    ticket_id: str
    user_id: UUID
    title: str
    description: str
    category: TicketCategory
    priority: TicketPriority
    status: TicketStatus
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closed_by_user: bool
    reopened_at: Optional[datetime] = None
    satisfaction_rating: Optional[int] = None
    satisfaction_comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class TicketDetail(TicketRead):
    messages: list[MessageRead] = Field(default_factory=list)
    attachments: list[AttachmentRead] = Field(default_factory=list)


class TicketFilters(BaseModel):
    status: Optional[TicketStatus] = None
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    search: Optional[str] = None
    sort_field: Literal['created_at', 'updated_at', 'priority', 'status'] = 'created_at'
    sort_direction: Literal['asc', 'desc'] = 'desc'
    page: int = Field(1, ge=1)

class TicketStatusUpdate(BaseModel):
    status: Literal['in_progress', 'resolved', 'closed']

class TicketRating(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
