from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .sessions import SessionRead, SessionStats
from .billing import SubscriptionRead


class UpcomingDay(BaseModel):
    date: date
    sessions: list[SessionRead] = Field(default_factory=list)

class ParentDashboard(BaseModel):
    children_count: int
    stats: SessionStats
    upcoming: list[UpcomingDay] = Field(default_factory=list)
    unread_notifications: int

class TeacherDashboard(BaseModel):
    courses_count: int
    students_count: int
    upcoming_sessions: list[SessionRead] = Field(default_factory=list)
    pending_grading: int
    unread_notifications: int

class ClientDashboard(BaseModel):
    assigned_assessments: int
    completed_assessments: int
    subscription: Optional[SubscriptionRead] = None
    unread_notifications: int

class AdminDashboard(BaseModel):
    users_by_role: dict[str, int]
    total_sessions: int
    scheduled_sessions: int
    revenue: Decimal
    open_tickets: int
    pending_teachers: int

class DashboardRead(BaseModel):
    role: str
    parent: Optional[ParentDashboard] = None
    teacher: Optional[TeacherDashboard] = None
    client: Optional[ClientDashboard] = None
    admin: Optional[AdminDashboard] = None
