"""Billing Service - monthly billing runs"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Optional, List, Iterable, Tuple
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homedelivery.config import settings
from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ValidationFailedError, ConflictError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import Bill, BillItem, Subscription
from homedelivery.models.enums import BillStatus, SubscriptionStatus
from homedelivery.schemas.billing import BillingRunResult
from homedelivery.schemas.identity import Actor, CustomerActor, ManagerActor
from homedelivery.services.sequence_service import SequenceService
from homedelivery.utils.time import get_utc_now, month_bounds, validate_period

logger = get_logger(__name__)

CENTS = Decimal("0.01")


class BillingService:
    @staticmethod
    async def generate_bills(
        db: AsyncSession,
        manager: Actor,
        month: int,
        year: int,
        area_ids: Optional[Iterable[UUID]] = None,
    ) -> BillingRunResult:
        """
        Bill every Active subscription in scope for one month.

        Subscriptions are grouped by (customer, area); each group becomes one
        bill with one item per subscription. The run is exactly-once per
        group and period: if any group already has a bill the whole run is
        rejected before anything is written.

        Raises:
            ValidationFailedError: month/year out of range
            ForbiddenError: a scope was requested and none of it is controlled
            ConflictError: the period is already billed for a group in scope
        """
        manager = AreaGuard.require_manager(manager)
        try:
            validate_period(month, year)
        except ValueError as e:
            raise ValidationFailedError(str(e))

        result = BillingRunResult(month=month, year=year)
        scope = AreaGuard.scope_areas(manager, area_ids)
        if not scope:
            if area_ids is not None:
                raise AreaGuard.deny(manager, "Not authorized for the requested areas")
            logger.warning("Billing run with no areas in scope", extra={"user_id": str(manager.user_id)})
            return result

        subscriptions = (await db.execute(
            select(Subscription)
            .options(selectinload(Subscription.publication))
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.area_id.in_(scope),
            )
            .order_by(Subscription.created_at)
        )).scalars().all()

        groups: "OrderedDict[Tuple[UUID, UUID], List[Subscription]]" = OrderedDict()
        for subscription in subscriptions:
            groups.setdefault((subscription.user_id, subscription.area_id), []).append(subscription)
        if not groups:
            logger.info("No active subscriptions to bill", extra={"month": month, "year": year})
            return result

        existing = await db.execute(
            select(Bill.user_id, Bill.area_id).where(
                Bill.bill_month == month,
                Bill.bill_year == year,
                Bill.area_id.in_(scope),
            )
        )
        already_billed = {(row.user_id, row.area_id) for row in existing}
        if already_billed & set(groups):
            raise ConflictError(f"Bills for {year}-{month:02d} already exist for customers in this scope")

        period_from, period_to = month_bounds(month, year)
        due_date = date(year, month, settings.BILL_DUE_DAY)
        bill_date = get_utc_now().date()

        async with atomic(db):
            for (user_id, area_id), members in groups.items():
                items = [BillingService._build_item(s, period_from, period_to) for s in members]
                total = sum((item.total_price for item in items), Decimal("0.00"))
                bill = Bill(
                    user_id=user_id,
                    area_id=area_id,
                    bill_number=await SequenceService.next_bill_number(db, month, year),
                    bill_date=bill_date,
                    bill_month=month,
                    bill_year=year,
                    total_amount=total,
                    outstanding_amount=total,
                    due_date=due_date,
                    status=BillStatus.UNPAID,
                    items=items,
                )
                db.add(bill)
                await db.flush()
                result.bills_created += 1
                result.total_billed += total
                result.bill_ids.append(bill.id)

        logger.info(
            "Billing run completed",
            extra={
                "month": month,
                "year": year,
                "bills_created": result.bills_created,
                "total_billed": str(result.total_billed),
            },
        )
        return result

    @staticmethod
    def _build_item(subscription: Subscription, period_from: date, period_to: date) -> BillItem:
        unit_price = Decimal(str(subscription.publication.price)).quantize(CENTS)
        return BillItem(
            subscription_id=subscription.id,
            publication_id=subscription.publication_id,
            quantity=subscription.quantity,
            unit_price=unit_price,
            total_price=(unit_price * subscription.quantity).quantize(CENTS),
            period_from=period_from,
            period_to=period_to,
        )

    @staticmethod
    async def list_bills(
        db: AsyncSession,
        actor: Actor,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[BillStatus] = None,
    ) -> List[Bill]:
        query = select(Bill).options(selectinload(Bill.items))
        if isinstance(actor, CustomerActor):
            query = query.where(Bill.user_id == actor.user_id)
        elif isinstance(actor, ManagerActor):
            if not actor.area_ids:
                logger.warning("Manager controls no areas", extra={"user_id": str(actor.user_id)})
                return []
            query = query.where(Bill.area_id.in_(actor.area_ids))
        else:
            raise AreaGuard.deny(actor, "Not authorized to view bills")

        if month is not None:
            query = query.where(Bill.bill_month == month)
        if year is not None:
            query = query.where(Bill.bill_year == year)
        if status is not None:
            query = query.where(Bill.status == status)

        result = await db.execute(query.order_by(Bill.bill_year.desc(), Bill.bill_month.desc(), Bill.bill_number))
        return list(result.scalars().all())

    @staticmethod
    async def get_bill(db: AsyncSession, actor: Actor, bill_id: UUID) -> Bill:
        result = await db.execute(
            select(Bill)
            .options(selectinload(Bill.items))
            .where(Bill.id == bill_id)
        )
        bill = result.scalar_one_or_none()
        if not bill:
            raise NotFoundError("Bill not found")
        AreaGuard.require_bill(actor, bill)
        return bill
