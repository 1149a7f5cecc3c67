'''
Pydantic models for plans, subscriptions, payment methods, invoices and payments.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import (
    PlanInterval, SubscriptionStatus, PaymentMethodType, InvoiceStatus, PaymentStatus
)


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    interval: PlanInterval = PlanInterval.MONTH
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    children_limit: Optional[int] = Field(None, ge=0)
    sessions_limit: Optional[int] = Field(None, ge=0)
    storage_limit: Optional[int] = Field(None, ge=0, description="Megabytes")

class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None
    children_limit: Optional[int] = Field(None, ge=0)
    sessions_limit: Optional[int] = Field(None, ge=0)
    storage_limit: Optional[int] = Field(None, ge=0)

class PlanRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    interval: PlanInterval
    features: Optional[list[str]] = None
    is_active: bool
    children_limit: Optional[int] = None
    sessions_limit: Optional[int] = None
    storage_limit: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionRead(BaseModel):
    id: UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    plan: PlanRead

    model_config = ConfigDict(from_attributes=True)

class ChangePlanRequest(BaseModel):
    plan_id: UUID

class CancelSubscriptionRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=1000)


class PaymentMethodCreate(BaseModel):
    type: PaymentMethodType = PaymentMethodType.CARD
    brand: Optional[str] = Field(None, max_length=50)
    last_four: Optional[str] = Field(None, pattern=r'^[0-9]{4}$')
    expiry_month: Optional[int] = Field(None, ge=1, le=12)
    expiry_year: Optional[int] = Field(None, ge=2000, le=2100)
    holder_name: Optional[str] = Field(None, max_length=255)

    @model_validator(mode='after')
    def check_card_fields(self):
        if self.type == PaymentMethodType.CARD:
            if not (self.last_four and self.expiry_month and self.expiry_year):
                raise ValueError("Cards need last_four, expiry_month and expiry_year.")
        return self

class PaymentMethodRead(BaseModel):
    id: UUID
    type: PaymentMethodType
    brand: Optional[str] = None
    last_four: Optional[str] = None
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None
    holder_name: Optional[str] = None
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    id: UUID
    invoice_id: Optional[UUID] = None
    payment_method_id: Optional[UUID] = None
    amount: Decimal
    status: PaymentStatus
    transaction_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class InvoiceRead(BaseModel):
    id: UUID
    invoice_number: str
    subscription_id: Optional[UUID] = None
    amount: Decimal
    status: InvoiceStatus
    description: Optional[str] = None
    due_date: datetime
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class InvoiceDetail(InvoiceRead):
    payments: list[PaymentRead] = Field(default_factory=list)

class InvoiceFilters(BaseModel):
    status: Optional[InvoiceStatus] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)


class ChangePlanResult(BaseModel):
    subscription: SubscriptionRead
    invoice: Optional[InvoiceRead] = None
    proration_amount: Decimal
    action: Literal['subscribed', 'changed']


class UsageItem(BaseModel):
    used: int
    limit: Optional[int] = None

class UsageRead(BaseModel):
    plan: Optional[PlanRead] = None
    children: UsageItem
    sessions_this_month: UsageItem
