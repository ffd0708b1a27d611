from typing import Annotated, Optional, Literal, Union
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from uuid import UUID
from datetime import date, datetime

from homedelivery.models.enums import (
    ChangeRequestType,
    ChangeRequestStatus,
    SubscriptionStatus,
)
from homedelivery.utils.time import to_naive_utc


class DeliveryPreferences(BaseModel):
    placement: Optional[str] = Field(None, max_length=100)
    additional_instructions: Optional[str] = None


class EffectiveDated(BaseModel):
    effective_date: Optional[datetime] = None

    @field_validator("effective_date")
    @classmethod
    def normalize_effective_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Stored as naive UTC like every other timestamp"""
        return to_naive_utc(v) if v is not None else v


class NewSubscriptionRequest(DeliveryPreferences, EffectiveDated):
    request_type: Literal["New"] = "New"
    publication_id: UUID
    quantity: int = Field(1, gt=0)
    address_id: Optional[UUID] = None


class UpdateSubscriptionRequest(DeliveryPreferences, EffectiveDated):
    request_type: Literal["Update"] = "Update"
    subscription_id: UUID
    quantity: Optional[int] = Field(None, gt=0)
    address_id: Optional[UUID] = None

    @model_validator(mode="after")
    def check_has_change(self):
        if (
            self.quantity is None
            and self.address_id is None
            and self.placement is None
            and self.additional_instructions is None
        ):
            raise ValueError("An update must change quantity, address or delivery preferences")
        return self


class CancelSubscriptionRequest(EffectiveDated):
    request_type: Literal["Cancel"] = "Cancel"
    subscription_id: UUID
    reason: Optional[str] = None


ChangeRequestCreate = Annotated[
    Union[NewSubscriptionRequest, UpdateSubscriptionRequest, CancelSubscriptionRequest],
    Field(discriminator="request_type"),
]


class ChangeRequestDecision(BaseModel):
    decision: ChangeRequestStatus
    comments: Optional[str] = None

    @field_validator("decision")
    @classmethod
    def validate_decision(cls, v: ChangeRequestStatus) -> ChangeRequestStatus:
        if v == ChangeRequestStatus.PENDING:
            raise ValueError("decision must be Approved or Rejected")
        return v


class SubscriptionPauseCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SubscriptionResponse(BaseModel):
    id: UUID
    user_id: UUID
    publication_id: UUID
    address_id: Optional[UUID] = None
    area_id: Optional[UUID] = None
    quantity: int
    status: SubscriptionStatus
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    placement: str
    additional_instructions: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ChangeRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    request_type: ChangeRequestType
    subscription_id: Optional[UUID] = None
    publication_id: Optional[UUID] = None
    new_quantity: Optional[int] = None
    new_address_id: Optional[UUID] = None
    status: ChangeRequestStatus
    request_date: datetime
    effective_date: datetime
    comments: Optional[str] = None
    processed_by: Optional[UUID] = None
    processed_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
