"""Commission Service - monthly deliverer payouts"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Iterable, Dict, Tuple
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ValidationFailedError, ConflictError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import (
    DeliveryPersonnel,
    DeliverySchedule,
    DeliveryItem,
    DelivererPayment,
    DelivererPaymentDetail,
    personnel_areas,
)
from homedelivery.models.enums import (
    DeliveryItemStatus,
    DelivererPaymentStatus,
    DelivererPaymentMethod,
)
from homedelivery.schemas.identity import Actor
from homedelivery.utils.time import get_utc_now, month_datetime_range, validate_period

logger = get_logger(__name__)

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class CommissionService:
    @staticmethod
    async def _delivered_items(
        db: AsyncSession,
        personnel_id: UUID,
        month: int,
        year: int,
    ) -> List[Tuple[DeliveryItem, Optional[UUID]]]:
        """Delivered items of a personnel in [first day, first day of next month), with schedule area"""
        schedules = (await db.execute(
            select(DeliverySchedule.id, DeliverySchedule.area_id)
            .where(DeliverySchedule.personnel_id == personnel_id)
        )).all()
        if not schedules:
            return []
        schedule_areas = {row.id: row.area_id for row in schedules}

        start, end = month_datetime_range(month, year)
        items = (await db.execute(
            select(DeliveryItem)
            .options(selectinload(DeliveryItem.publication))
            .where(
                DeliveryItem.schedule_id.in_(list(schedule_areas)),
                DeliveryItem.status == DeliveryItemStatus.DELIVERED,
                DeliveryItem.delivery_time >= start,
                DeliveryItem.delivery_time < end,
            )
            .order_by(DeliveryItem.delivery_time)
        )).scalars().all()
        return [(item, schedule_areas[item.schedule_id]) for item in items]

    @staticmethod
    def _build_payment(
        personnel: DeliveryPersonnel,
        month: int,
        year: int,
        delivered: List[Tuple[DeliveryItem, Optional[UUID]]],
    ) -> DelivererPayment:
        """
        amount = sum(quantity x price x rate / 100), rounded half-up to cents
        once over the whole period. Details break it down per
        (publication, area).
        """
        rate = Decimal(str(personnel.commission_rate))
        breakdown: Dict[Tuple[UUID, Optional[UUID]], List[Decimal]] = {}
        total = Decimal("0")
        for item, area_id in delivered:
            value = Decimal(item.quantity) * Decimal(str(item.publication.price))
            total += value * rate / HUNDRED
            entry = breakdown.setdefault((item.publication_id, area_id), [0, Decimal("0")])
            entry[0] += 1
            entry[1] += value

        details = [
            DelivererPaymentDetail(
                publication_id=publication_id,
                area_id=area_id,
                delivery_count=count,
                publication_value=round_money(value),
                commission_amount=round_money(value * rate / HUNDRED),
            )
            for (publication_id, area_id), (count, value) in breakdown.items()
        ]
        return DelivererPayment(
            personnel_id=personnel.id,
            payment_month=month,
            payment_year=year,
            amount=round_money(total),
            commission_rate=rate,
            status=DelivererPaymentStatus.PENDING,
            payment_method=DelivererPaymentMethod.BANK_TRANSFER,
            details=details,
        )

    @staticmethod
    async def process_payments(
        db: AsyncSession,
        manager: Actor,
        month: int,
        year: int,
        area_ids: Optional[Iterable[UUID]] = None,
    ) -> List[DelivererPayment]:
        """
        Create Pending commission payouts for every active personnel serving
        the manager's areas. Personnel already holding a payout for the
        period are skipped, so re-running only fills gaps.
        """
        manager = AreaGuard.require_manager(manager)
        try:
            validate_period(month, year)
        except ValueError as e:
            raise ValidationFailedError(str(e))

        scope = AreaGuard.scope_areas(manager, area_ids)
        if not scope:
            if area_ids is not None:
                raise AreaGuard.deny(manager, "Not authorized for the requested areas")
            logger.warning("Commission run with no areas in scope", extra={"user_id": str(manager.user_id)})
            return []

        personnel_ids = (await db.execute(
            select(personnel_areas.c.personnel_id)
            .where(personnel_areas.c.area_id.in_(scope))
            .distinct()
        )).scalars().all()
        if not personnel_ids:
            return []

        personnel_list = (await db.execute(
            select(DeliveryPersonnel)
            .where(
                DeliveryPersonnel.id.in_(personnel_ids),
                DeliveryPersonnel.is_active.is_(True),
            )
            .order_by(DeliveryPersonnel.created_at)
        )).scalars().all()

        already_paid = set((await db.execute(
            select(DelivererPayment.personnel_id).where(
                DelivererPayment.payment_month == month,
                DelivererPayment.payment_year == year,
                DelivererPayment.personnel_id.in_(personnel_ids),
            )
        )).scalars().all())

        payments: List[DelivererPayment] = []
        for personnel in personnel_list:
            if personnel.id in already_paid:
                logger.info(
                    "Commission already processed",
                    extra={"personnel_id": str(personnel.id), "month": month, "year": year},
                )
                continue
            delivered = await CommissionService._delivered_items(db, personnel.id, month, year)
            payments.append(CommissionService._build_payment(personnel, month, year, delivered))

        if payments:
            async with atomic(db):
                db.add_all(payments)

        logger.info(
            "Commission run completed",
            extra={"month": month, "year": year, "payments_created": len(payments)},
        )
        return payments

    @staticmethod
    async def mark_paid(
        db: AsyncSession,
        manager: Actor,
        payment_id: UUID,
        method: DelivererPaymentMethod = DelivererPaymentMethod.BANK_TRANSFER,
        transaction_id: Optional[str] = None,
    ) -> DelivererPayment:
        manager = AreaGuard.require_manager(manager)
        payment = await db.get(DelivererPayment, payment_id)
        if not payment:
            raise NotFoundError("Deliverer payment not found")

        personnel = (await db.execute(
            select(DeliveryPersonnel)
            .options(selectinload(DeliveryPersonnel.areas))
            .where(DeliveryPersonnel.id == payment.personnel_id)
        )).scalar_one()
        AreaGuard.require_personnel(manager, personnel)
        if payment.status == DelivererPaymentStatus.PAID:
            raise ConflictError("Deliverer payment is already paid")

        async with atomic(db):
            payment.status = DelivererPaymentStatus.PAID
            payment.payment_method = method
            payment.transaction_id = transaction_id
            payment.payment_date = get_utc_now()
        return payment

    @staticmethod
    async def get_earnings(db: AsyncSession, deliverer: Actor, month: int, year: int) -> DelivererPayment:
        """The deliverer's payout for a month, or an unsaved zero placeholder"""
        deliverer = AreaGuard.require_deliverer(deliverer)
        try:
            validate_period(month, year)
        except ValueError as e:
            raise ValidationFailedError(str(e))

        payment = (await db.execute(
            select(DelivererPayment)
            .options(selectinload(DelivererPayment.details))
            .where(
                DelivererPayment.personnel_id == deliverer.personnel_id,
                DelivererPayment.payment_month == month,
                DelivererPayment.payment_year == year,
            )
        )).scalar_one_or_none()
        if payment:
            return payment
        return DelivererPayment(
            personnel_id=deliverer.personnel_id,
            payment_month=month,
            payment_year=year,
            amount=Decimal("0.00"),
            commission_rate=deliverer.commission_rate,
            status=DelivererPaymentStatus.PENDING,
            payment_method=DelivererPaymentMethod.BANK_TRANSFER,
            details=[],
        )
