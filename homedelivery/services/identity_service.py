"""Identity Service - maps an authenticated user to a role-tagged actor"""

from decimal import Decimal
from typing import FrozenSet, Optional
from uuid import UUID
from sqlalchemy import select, Table
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homedelivery.core.exceptions import NotFoundError, ForbiddenError
from homedelivery.core.logging import get_logger
from homedelivery.models import User, Area, DeliveryPersonnel, area_managers, area_customers
from homedelivery.models.enums import UserRole
from homedelivery.schemas.identity import AnyActor, ManagerActor, DelivererActor, CustomerActor

logger = get_logger(__name__)


class IdentityService:
    """Leaf dependency: every other service receives the actor this builds"""

    @staticmethod
    async def _member_area_ids(db: AsyncSession, membership: Table, user_id: UUID) -> FrozenSet[UUID]:
        result = await db.execute(
            select(Area.id)
            .join(membership, membership.c.area_id == Area.id)
            .where(
                membership.c.user_id == user_id,
                Area.is_active.is_(True),
            )
        )
        return frozenset(result.scalars().all())

    @staticmethod
    async def get_personnel_by_user(db: AsyncSession, user_id: UUID) -> Optional[DeliveryPersonnel]:
        result = await db.execute(
            select(DeliveryPersonnel)
            .options(selectinload(DeliveryPersonnel.areas))
            .where(DeliveryPersonnel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve_actor(db: AsyncSession, user_id: UUID) -> AnyActor:
        """
        Build the actor variant for an authenticated user.

        Raises:
            NotFoundError: unknown user
            ForbiddenError: inactive user, or a deliverer without an active
                personnel record
        """
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise ForbiddenError("Inactive user")

        if user.role == UserRole.MANAGER:
            area_ids = await IdentityService._member_area_ids(db, area_managers, user.id)
            return ManagerActor(user_id=user.id, area_ids=area_ids)

        if user.role == UserRole.CUSTOMER:
            area_ids = await IdentityService._member_area_ids(db, area_customers, user.id)
            return CustomerActor(user_id=user.id, area_ids=area_ids)

        personnel = await IdentityService.get_personnel_by_user(db, user.id)
        if not personnel or not personnel.is_active:
            logger.warning("Deliverer without active personnel record", extra={"user_id": str(user.id)})
            raise ForbiddenError("Delivery personnel record not found or inactive")
        return DelivererActor(
            user_id=user.id,
            personnel_id=personnel.id,
            area_ids=frozenset(area.id for area in personnel.areas if area.is_active),
            commission_rate=Decimal(str(personnel.commission_rate)),
        )
