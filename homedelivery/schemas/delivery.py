from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

from homedelivery.models.enums import (
    RouteOptimization,
    ScheduleStatus,
    DeliveryItemStatus,
    DelivererPaymentStatus,
    DelivererPaymentMethod,
)


class RouteStop(BaseModel):
    address_id: UUID
    sequence_number: int = Field(..., ge=1)


class RouteCreate(BaseModel):
    personnel_id: UUID
    area_id: UUID
    route_name: str = Field(..., min_length=1, max_length=255)
    route_description: Optional[str] = None
    optimization_criteria: RouteOptimization = RouteOptimization.DISTANCE
    stops: Optional[List[RouteStop]] = None


class RouteStopResponse(BaseModel):
    address_id: UUID
    sequence_number: int

    model_config = ConfigDict(from_attributes=True)


class RouteResponse(BaseModel):
    id: UUID
    personnel_id: UUID
    area_id: Optional[UUID] = None
    route_name: str
    optimization_criteria: RouteOptimization
    is_active: bool
    stops: List[RouteStopResponse] = []

    model_config = ConfigDict(from_attributes=True)


class DeliveryItemResponse(BaseModel):
    id: UUID
    subscription_id: UUID
    address_id: UUID
    publication_id: UUID
    quantity: int
    sequence_number: Optional[int] = None
    status: DeliveryItemStatus
    delivery_notes: Optional[str] = None
    delivery_time: Optional[datetime] = None
    photo_proof: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DeliveryScheduleResponse(BaseModel):
    id: UUID
    personnel_id: UUID
    route_id: Optional[UUID] = None
    area_id: Optional[UUID] = None
    date: date
    status: ScheduleStatus
    notes: Optional[str] = None
    items: List[DeliveryItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class DelivererPaymentDetailResponse(BaseModel):
    publication_id: UUID
    area_id: Optional[UUID] = None
    delivery_count: int
    publication_value: Decimal
    commission_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class DelivererPaymentResponse(BaseModel):
    id: Optional[UUID] = None
    personnel_id: UUID
    payment_month: int
    payment_year: int
    amount: Decimal
    commission_rate: Decimal
    status: DelivererPaymentStatus
    payment_method: DelivererPaymentMethod
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    details: List[DelivererPaymentDetailResponse] = []

    model_config = ConfigDict(from_attributes=True)
