"""Delivery Service - daily schedules and delivery item progress"""

from datetime import date
from typing import Optional, List
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ValidationFailedError, ConflictError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import DeliveryRoute, DeliverySchedule, DeliveryItem, Subscription
from homedelivery.models.enums import SubscriptionStatus, ScheduleStatus, DeliveryItemStatus
from homedelivery.schemas.identity import Actor, ManagerActor, DelivererActor
from homedelivery.services.route_service import RouteService
from homedelivery.utils.time import get_utc_now

logger = get_logger(__name__)

TERMINAL_ITEM_STATUSES = frozenset({
    DeliveryItemStatus.DELIVERED,
    DeliveryItemStatus.FAILED,
    DeliveryItemStatus.SKIPPED,
})


class DeliveryService:
    @staticmethod
    async def create_schedule(
        db: AsyncSession,
        manager: Actor,
        personnel_id: UUID,
        route_id: UUID,
        area_id: UUID,
        date: date,
        notes: Optional[str] = None,
    ) -> DeliverySchedule:
        """
        Create a personnel's schedule for one date with one Pending item per
        Active subscription in the area.

        Items follow the route's stop order; subscriptions whose address is
        not on the route come after, in insertion order. Exactly one schedule
        may exist per (personnel, date).
        """
        manager = AreaGuard.require_manager(manager)
        AreaGuard.require_area(manager, area_id)

        personnel = await RouteService.get_personnel(db, personnel_id)
        RouteService.require_serving_personnel(personnel, area_id)

        route = (await db.execute(
            select(DeliveryRoute)
            .options(selectinload(DeliveryRoute.stops))
            .where(DeliveryRoute.id == route_id)
        )).scalar_one_or_none()
        if not route:
            raise NotFoundError("Route not found")
        if not route.is_active or route.area_id != area_id or route.personnel_id != personnel.id:
            raise ValidationFailedError("Route does not belong to this personnel and area")

        existing = await db.execute(
            select(DeliverySchedule.id).where(
                DeliverySchedule.personnel_id == personnel.id,
                DeliverySchedule.date == date,
            )
        )
        if existing.first():
            raise ConflictError("A schedule already exists for this personnel and date")

        subscriptions = (await db.execute(
            select(Subscription)
            .where(
                Subscription.area_id == area_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.address_id.isnot(None),
            )
            .order_by(Subscription.created_at)
        )).scalars().all()

        stop_order = {stop.address_id: stop.sequence_number for stop in route.stops}
        on_route = sorted(
            (s for s in subscriptions if s.address_id in stop_order),
            key=lambda s: stop_order[s.address_id],
        )
        off_route = [s for s in subscriptions if s.address_id not in stop_order]

        items = [
            DeliveryItem(
                subscription_id=subscription.id,
                address_id=subscription.address_id,
                publication_id=subscription.publication_id,
                quantity=subscription.quantity,
                sequence_number=position,
                status=DeliveryItemStatus.PENDING,
            )
            for position, subscription in enumerate(on_route + off_route, start=1)
        ]

        async with atomic(db):
            schedule = DeliverySchedule(
                personnel_id=personnel.id,
                route_id=route.id,
                area_id=area_id,
                date=date,
                status=ScheduleStatus.PENDING,
                notes=notes,
                items=items,
            )
            db.add(schedule)

        logger.info(
            "Delivery schedule created",
            extra={"schedule_id": str(schedule.id), "date": date.isoformat(), "items": len(items)},
        )
        return schedule

    @staticmethod
    async def _get_own_item(db: AsyncSession, deliverer: Actor, item_id: UUID) -> DeliveryItem:
        deliverer = AreaGuard.require_deliverer(deliverer)
        item = (await db.execute(
            select(DeliveryItem)
            .options(selectinload(DeliveryItem.schedule))
            .where(DeliveryItem.id == item_id)
        )).scalar_one_or_none()
        if not item:
            raise NotFoundError("Delivery item not found")
        if item.schedule.personnel_id != deliverer.personnel_id:
            raise AreaGuard.deny(deliverer, "Not authorized for this delivery item")
        return item

    @staticmethod
    async def update_item_status(
        db: AsyncSession,
        deliverer: Actor,
        item_id: UUID,
        status: DeliveryItemStatus,
        notes: Optional[str] = None,
    ) -> DeliveryItem:
        """Pending -> Delivered | Failed | Skipped; terminal once set"""
        if status not in TERMINAL_ITEM_STATUSES:
            raise ValidationFailedError("Status must be Delivered, Failed or Skipped")
        item = await DeliveryService._get_own_item(db, deliverer, item_id)
        if item.status != DeliveryItemStatus.PENDING:
            raise ConflictError(f"Delivery item is already {item.status.value}")

        remaining = await db.scalar(
            select(func.count()).select_from(DeliveryItem).where(
                DeliveryItem.schedule_id == item.schedule_id,
                DeliveryItem.status == DeliveryItemStatus.PENDING,
                DeliveryItem.id != item.id,
            )
        )

        now = get_utc_now()
        schedule = item.schedule
        async with atomic(db):
            item.status = status
            item.delivery_time = now
            if notes is not None:
                item.delivery_notes = notes
            if schedule.status == ScheduleStatus.PENDING:
                schedule.status = ScheduleStatus.IN_PROGRESS
                schedule.start_time = now
            if not remaining:
                schedule.status = ScheduleStatus.COMPLETED
                schedule.end_time = now

        return item

    @staticmethod
    async def attach_proof(db: AsyncSession, deliverer: Actor, item_id: UUID, reference: str) -> DeliveryItem:
        """Store the blob store reference of a delivery photo"""
        if not reference or not reference.strip():
            raise ValidationFailedError("Proof reference is required")
        item = await DeliveryService._get_own_item(db, deliverer, item_id)
        async with atomic(db):
            item.photo_proof = reference.strip()
        return item

    @staticmethod
    async def list_schedules(
        db: AsyncSession,
        actor: Actor,
        on_date: Optional[date] = None,
    ) -> List[DeliverySchedule]:
        query = select(DeliverySchedule).options(selectinload(DeliverySchedule.items))
        if isinstance(actor, ManagerActor):
            if not actor.area_ids:
                logger.warning("Manager controls no areas", extra={"user_id": str(actor.user_id)})
                return []
            query = query.where(DeliverySchedule.area_id.in_(actor.area_ids))
        elif isinstance(actor, DelivererActor):
            query = query.where(DeliverySchedule.personnel_id == actor.personnel_id)
        else:
            raise AreaGuard.deny(actor, "Not authorized to view delivery schedules")

        if on_date is not None:
            query = query.where(DeliverySchedule.date == on_date)
        result = await db.execute(query.order_by(DeliverySchedule.date.desc()))
        return list(result.scalars().all())
