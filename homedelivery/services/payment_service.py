"""Payment Service - applies payments against outstanding bills"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, List
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ValidationFailedError, ConflictError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import Bill, Payment, PaymentReminder, CustomerActivity
from homedelivery.models.enums import (
    BillStatus,
    PaymentMethod,
    PaymentStatus,
    ReminderStatus,
    CustomerActivityType,
)
from homedelivery.schemas.identity import Actor, CustomerActor, ManagerActor
from homedelivery.services.sequence_service import SequenceService
from homedelivery.utils.time import get_utc_now

logger = get_logger(__name__)

ZERO = Decimal("0.00")


class PaymentService:
    @staticmethod
    def _parse_amount(amount) -> Decimal:
        try:
            value = Decimal(str(amount)).quantize(Decimal("0.01"))
        except (InvalidOperation, ValueError):
            raise ValidationFailedError("Payment amount must be a number")
        if value <= ZERO:
            raise ValidationFailedError("Payment amount must be positive")
        return value

    @staticmethod
    def _parse_method(method) -> PaymentMethod:
        try:
            return PaymentMethod(method)
        except ValueError:
            raise ValidationFailedError(f"Unsupported payment method: {method}")

    @staticmethod
    async def apply_payment(
        db: AsyncSession,
        actor: Actor,
        bill_id: UUID,
        amount,
        method,
        reference: Optional[str] = None,
    ) -> Payment:
        """
        Apply a payment to a bill.

        outstanding = max(0, outstanding - amount). Overpayment is clamped and
        the surplus discarded; no credit is kept. A bill that becomes Paid has
        its open reminders resolved in the same transaction.
        """
        amount = PaymentService._parse_amount(amount)
        method = PaymentService._parse_method(method)
        if not isinstance(actor, (CustomerActor, ManagerActor)):
            raise AreaGuard.deny(actor, "Only customers and managers can record payments")

        bill = await db.get(Bill, bill_id, with_for_update=True)
        if not bill:
            raise NotFoundError("Bill not found")
        AreaGuard.require_bill(actor, bill)
        if bill.outstanding_amount <= ZERO:
            raise ConflictError("Bill has no outstanding balance")

        now = get_utc_now()
        async with atomic(db):
            payment = Payment(
                bill_id=bill.id,
                user_id=bill.user_id,
                received_by=actor.user_id if isinstance(actor, ManagerActor) else None,
                payment_date=now,
                amount=amount,
                payment_method=method,
                reference_number=reference,
                status=PaymentStatus.COMPLETED,
                receipt_number=await SequenceService.next_receipt_number(db, now.month, now.year),
            )
            db.add(payment)

            outstanding = max(ZERO, Decimal(str(bill.outstanding_amount)) - amount)
            bill.outstanding_amount = outstanding
            bill.status = BillStatus.PAID if outstanding == ZERO else BillStatus.PARTIALLY_PAID

            if bill.status == BillStatus.PAID:
                await db.execute(
                    update(PaymentReminder)
                    .where(
                        PaymentReminder.bill_id == bill.id,
                        PaymentReminder.status.in_([ReminderStatus.PENDING, ReminderStatus.SENT]),
                    )
                    .values(status=ReminderStatus.RESOLVED)
                )

            db.add(CustomerActivity(
                user_id=bill.user_id,
                activity_type=CustomerActivityType.PAYMENT,
                details=f"Paid {amount} against bill {bill.bill_number}",
            ))

        await db.refresh(payment)
        logger.info(
            "Payment applied",
            extra={
                "bill_id": str(bill.id),
                "receipt_number": payment.receipt_number,
                "amount": str(amount),
                "outstanding": str(bill.outstanding_amount),
            },
        )
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        actor: Actor,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Payment]:
        """Bill ids in scope first, then the payments against those bills"""
        bill_query = select(Bill.id)
        if isinstance(actor, CustomerActor):
            bill_query = bill_query.where(Bill.user_id == actor.user_id)
        elif isinstance(actor, ManagerActor):
            if not actor.area_ids:
                logger.warning("Manager controls no areas", extra={"user_id": str(actor.user_id)})
                return []
            bill_query = bill_query.where(Bill.area_id.in_(actor.area_ids))
        else:
            raise AreaGuard.deny(actor, "Not authorized to view payments")

        bill_ids = (await db.execute(bill_query)).scalars().all()
        if not bill_ids:
            return []

        query = select(Payment).where(Payment.bill_id.in_(bill_ids))
        if start is not None:
            query = query.where(Payment.payment_date >= start)
        if end is not None:
            query = query.where(Payment.payment_date <= end)
        result = await db.execute(query.order_by(Payment.payment_date.desc()))
        return list(result.scalars().all())
