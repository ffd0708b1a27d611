from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

from homedelivery.models.enums import (
    BillStatus,
    PaymentMethod,
    PaymentStatus,
    ReminderType,
    ReminderStatus,
    DeliveryMethod,
)


class BillItemResponse(BaseModel):
    id: UUID
    subscription_id: Optional[UUID] = None
    publication_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    period_from: date
    period_to: date

    model_config = ConfigDict(from_attributes=True)


class BillResponse(BaseModel):
    id: UUID
    user_id: UUID
    area_id: Optional[UUID] = None
    bill_number: str
    bill_date: date
    bill_month: int
    bill_year: int
    total_amount: Decimal
    outstanding_amount: Decimal
    due_date: date
    status: BillStatus
    items: List[BillItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class BillingRunResult(BaseModel):
    """Outcome of one monthly billing run"""
    month: int
    year: int
    bills_created: int = 0
    total_billed: Decimal = Decimal("0.00")
    bill_ids: List[UUID] = []


class PaymentCreate(BaseModel):
    bill_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: PaymentMethod
    reference_number: Optional[str] = Field(None, max_length=100)


class PaymentResponse(BaseModel):
    id: UUID
    bill_id: UUID
    user_id: UUID
    received_by: Optional[UUID] = None
    payment_date: datetime
    amount: Decimal
    payment_method: PaymentMethod
    reference_number: Optional[str] = None
    status: PaymentStatus
    receipt_number: str

    model_config = ConfigDict(from_attributes=True)


class ReminderResponse(BaseModel):
    id: UUID
    bill_id: UUID
    user_id: UUID
    reminder_date: datetime
    reminder_type: ReminderType
    message: str
    status: ReminderStatus
    delivery_method: DeliveryMethod
    sent_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
