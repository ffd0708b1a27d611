"""Route Service - delivery routes and their stop order"""

from typing import List
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ValidationFailedError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import DeliveryPersonnel, DeliveryRoute, RouteAddress, Subscription
from homedelivery.models.enums import SubscriptionStatus
from homedelivery.schemas.delivery import RouteCreate
from homedelivery.schemas.identity import Actor

logger = get_logger(__name__)


class RouteService:
    @staticmethod
    async def get_personnel(db: AsyncSession, personnel_id: UUID) -> DeliveryPersonnel:
        result = await db.execute(
            select(DeliveryPersonnel)
            .options(selectinload(DeliveryPersonnel.areas))
            .where(DeliveryPersonnel.id == personnel_id)
        )
        personnel = result.scalar_one_or_none()
        if not personnel:
            raise NotFoundError("Delivery personnel not found")
        return personnel

    @staticmethod
    def require_serving_personnel(personnel: DeliveryPersonnel, area_id: UUID) -> None:
        if not personnel.is_active:
            raise ValidationFailedError("Delivery personnel is inactive")
        if area_id not in personnel.area_ids:
            raise ValidationFailedError("Delivery personnel is not assigned to this area")

    @staticmethod
    async def active_subscription_addresses(db: AsyncSession, area_id: UUID) -> List[UUID]:
        """Addresses of Active subscriptions in an area, first-seen order"""
        result = await db.execute(
            select(Subscription.address_id)
            .where(
                Subscription.area_id == area_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.address_id.isnot(None),
            )
            .order_by(Subscription.created_at)
        )
        return list(dict.fromkeys(result.scalars().all()))

    @staticmethod
    async def create_route(db: AsyncSession, manager: Actor, data: RouteCreate) -> DeliveryRoute:
        """
        Create a route for a personnel in an area.

        Explicit stops are kept in the given order while their sequence
        numbers strictly increase and their address belongs to an Active
        subscription in the area; any other stop is dropped with a warning.
        Without explicit stops the route visits active subscription
        addresses in insertion order.
        """
        manager = AreaGuard.require_manager(manager)
        AreaGuard.require_area(manager, data.area_id)
        personnel = await RouteService.get_personnel(db, data.personnel_id)
        RouteService.require_serving_personnel(personnel, data.area_id)

        addresses = await RouteService.active_subscription_addresses(db, data.area_id)
        stops: List[RouteAddress] = []
        if data.stops is None:
            stops = [
                RouteAddress(address_id=address_id, sequence_number=position)
                for position, address_id in enumerate(addresses, start=1)
            ]
        else:
            valid = set(addresses)
            seen = set()
            last_sequence = 0
            for stop in data.stops:
                if stop.address_id not in valid or stop.address_id in seen or stop.sequence_number <= last_sequence:
                    logger.warning(
                        "Dropping invalid route stop",
                        extra={"address_id": str(stop.address_id), "sequence_number": stop.sequence_number},
                    )
                    continue
                stops.append(RouteAddress(address_id=stop.address_id, sequence_number=stop.sequence_number))
                seen.add(stop.address_id)
                last_sequence = stop.sequence_number

        async with atomic(db):
            route = DeliveryRoute(
                personnel_id=personnel.id,
                area_id=data.area_id,
                route_name=data.route_name,
                route_description=data.route_description,
                optimization_criteria=data.optimization_criteria,
                stops=stops,
            )
            db.add(route)

        logger.info("Route created", extra={"route_id": str(route.id), "stops": len(stops)})
        return route
