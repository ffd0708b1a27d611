"""Role-tagged actor variants supplied to every engine operation"""

from decimal import Decimal
from typing import FrozenSet, Literal, Union
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from homedelivery.models.enums import UserRole


class Actor(BaseModel):
    """
    An authenticated caller together with the areas it may act on.

    Built once per operation by the identity resolution layer and never
    mutated afterwards.
    """
    user_id: UUID
    area_ids: FrozenSet[UUID] = frozenset()

    model_config = ConfigDict(frozen=True)


class ManagerActor(Actor):
    """Manager: areas whose manager list contains the user"""
    role: Literal[UserRole.MANAGER] = UserRole.MANAGER


class DelivererActor(Actor):
    """Deliverer: areas assigned to the user's personnel record"""
    role: Literal[UserRole.DELIVERER] = UserRole.DELIVERER
    personnel_id: UUID
    commission_rate: Decimal = Decimal("2.5")


class CustomerActor(Actor):
    """Customer: areas whose customer list contains the user"""
    role: Literal[UserRole.CUSTOMER] = UserRole.CUSTOMER


AnyActor = Union[ManagerActor, DelivererActor, CustomerActor]
