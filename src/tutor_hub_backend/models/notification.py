'''
Pydantic models for the notification center: reads, filters, stats, bulk actions and admin broadcasts.
'''
from datetime import date, datetime
from typing import Optional, Literal, Union
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import NotificationType, UserRole


class NotificationRead(BaseModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    read_at: Optional[datetime] = None
    seen_at: Optional[datetime] = None
    action_text: Optional[str] = None
    action_url: Optional[str] = None
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices('extra_data', 'metadata'))
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


DateRange = Literal['today', 'yesterday', 'this_week', 'last_week', 'this_month', 'last_month', 'custom']

class NotificationFilters(BaseModel):
    type: Union[Literal['all'], NotificationType] = 'all'
    unread_only: bool = False
    search: Optional[str] = None
    date_range: Optional[DateRange] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = Field(1, ge=1)

    @model_validator(mode='after')
    def check_custom_range(self):
        if self.date_range == 'custom' and (self.date_from is None or self.date_to is None):
            raise ValueError("A custom date range needs both date_from and date_to.")
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from.")
        return self


class NotificationStats(BaseModel):
    total_unread: int
    total: int
    today: int
    academic: int
    billing: int
    system: int


class UnreadCount(BaseModel):
    unread: int


class BulkNotificationAction(BaseModel):
    action: Literal['mark_read', 'mark_unread', 'delete']
    notification_ids: list[UUID] = Field(..., min_length=1)


class BulkActionResult(BaseModel):
    action: str
    affected: int


class NotificationSend(BaseModel):
    """
    Admin broadcast payload. Exactly one audience: user_ids, role, or everyone.
    """
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    action_text: Optional[str] = Field(None, max_length=100)
    action_url: Optional[str] = None
    metadata: Optional[dict] = None
    user_ids: list[UUID] = Field(default_factory=list)
    role: Optional[UserRole] = None
    everyone: bool = False

    @model_validator(mode='after')
    def check_audience(self):
        audiences = sum([bool(self.user_ids), self.role is not None, self.everyone])
        if audiences != 1:
            raise ValueError("Choose exactly one audience: user_ids, role or everyone.")
        return self


class NotificationSendResult(BaseModel):
    sent: int
