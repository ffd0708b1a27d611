"""Reminder Service - throttled overdue-bill reminders"""

from datetime import datetime, timedelta
from typing import Optional, List, Iterable
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from homedelivery.config import settings
from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import NotFoundError, ConflictError
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import Bill, PaymentReminder, User
from homedelivery.models.enums import BillStatus, ReminderType, ReminderStatus, DeliveryMethod
from homedelivery.schemas.identity import Actor
from homedelivery.utils.time import get_utc_now

logger = get_logger(__name__)

# Escalation order by number of earlier reminders for the bill
REMINDER_LADDER = (
    ReminderType.FIRST_NOTICE,
    ReminderType.FINAL_NOTICE,
    ReminderType.SUSPENSION_NOTICE,
)


class ReminderService:
    @staticmethod
    def reminder_type_for(previous_count: int) -> ReminderType:
        return REMINDER_LADDER[min(previous_count, len(REMINDER_LADDER) - 1)]

    @staticmethod
    def build_message(bill: Bill) -> str:
        return (
            f"Your bill {bill.bill_number} of amount {bill.outstanding_amount} is overdue. "
            f"Please make the payment as soon as possible."
        )

    @staticmethod
    async def send_reminders(
        db: AsyncSession,
        manager: Actor,
        area_ids: Optional[Iterable[UUID]] = None,
        now: Optional[datetime] = None,
    ) -> List[PaymentReminder]:
        """
        Queue one Pending reminder per overdue bill in scope that has had no
        reminder within the cooldown window. Sending is the dispatcher's job.
        """
        manager = AreaGuard.require_manager(manager)
        scope = AreaGuard.scope_areas(manager, area_ids)
        if not scope:
            if area_ids is not None:
                raise AreaGuard.deny(manager, "Not authorized for the requested areas")
            logger.warning("Reminder run with no areas in scope", extra={"user_id": str(manager.user_id)})
            return []

        now = now or get_utc_now()
        cutoff = now - timedelta(days=settings.REMINDER_COOLDOWN_DAYS)

        bills = (await db.execute(
            select(Bill)
            .where(
                Bill.area_id.in_(scope),
                Bill.status.in_([BillStatus.UNPAID, BillStatus.PARTIALLY_PAID]),
                Bill.due_date < now.date(),
            )
            .order_by(Bill.due_date)
        )).scalars().all()
        if not bills:
            return []
        bill_ids = [bill.id for bill in bills]

        recently_reminded = set((await db.execute(
            select(PaymentReminder.bill_id).where(
                PaymentReminder.bill_id.in_(bill_ids),
                PaymentReminder.reminder_date >= cutoff,
            )
        )).scalars().all())
        previous_counts = dict((await db.execute(
            select(PaymentReminder.bill_id, func.count())
            .where(PaymentReminder.bill_id.in_(bill_ids))
            .group_by(PaymentReminder.bill_id)
        )).all())

        due = [bill for bill in bills if bill.id not in recently_reminded]
        if not due:
            return []

        users = (await db.execute(
            select(User).where(User.id.in_([bill.user_id for bill in due]))
        )).scalars().all()
        prefers_email = {user.id: user.notify_email for user in users}

        reminders = [
            PaymentReminder(
                bill_id=bill.id,
                user_id=bill.user_id,
                reminder_date=now,
                reminder_type=ReminderService.reminder_type_for(previous_counts.get(bill.id, 0)),
                message=ReminderService.build_message(bill),
                status=ReminderStatus.PENDING,
                delivery_method=DeliveryMethod.EMAIL if prefers_email.get(bill.user_id) else DeliveryMethod.PRINT,
            )
            for bill in due
        ]
        async with atomic(db):
            db.add_all(reminders)

        logger.info(
            "Payment reminders queued",
            extra={"created": len(reminders), "skipped": len(bills) - len(reminders)},
        )
        return reminders

    @staticmethod
    async def mark_sent(db: AsyncSession, manager: Actor, reminder_id: UUID) -> PaymentReminder:
        """Called once the notification dispatcher has delivered the reminder"""
        manager = AreaGuard.require_manager(manager)
        reminder = await db.get(PaymentReminder, reminder_id)
        if not reminder:
            raise NotFoundError("Payment reminder not found")
        bill = await db.get(Bill, reminder.bill_id)
        AreaGuard.require_bill(manager, bill)
        if reminder.status != ReminderStatus.PENDING:
            raise ConflictError(f"Reminder is already {reminder.status.value}")
        async with atomic(db):
            reminder.status = ReminderStatus.SENT
            reminder.sent_at = get_utc_now()
        return reminder
