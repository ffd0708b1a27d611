"""Overdue bill reminders."""

import pytest
from datetime import date, datetime
from uuid import uuid4

from homedelivery.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from homedelivery.models.enums import UserRole, BillStatus, ReminderType, ReminderStatus, DeliveryMethod
from homedelivery.services.identity_service import IdentityService
from homedelivery.services.reminder_service import ReminderService

JUNE_20 = datetime(2024, 6, 20, 9, 0)


@pytest.mark.asyncio
async def test_overdue_bill_gets_first_notice(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area, total="100.00")

    reminders = await ReminderService.send_reminders(db, world.manager, now=JUNE_20)

    assert len(reminders) == 1
    reminder = reminders[0]
    assert reminder.bill_id == bill.id
    assert reminder.user_id == world.customer_user.id
    assert reminder.reminder_type == ReminderType.FIRST_NOTICE
    assert reminder.status == ReminderStatus.PENDING
    assert reminder.delivery_method == DeliveryMethod.EMAIL
    assert reminder.message.startswith(f"Your bill {bill.bill_number} of amount 100.00 is overdue.")


@pytest.mark.asyncio
async def test_reminders_throttled_then_escalate(db, seed, world):
    await seed.bill(world.customer_user, world.area)
    await ReminderService.send_reminders(db, world.manager, now=JUNE_20)

    assert await ReminderService.send_reminders(db, world.manager, now=datetime(2024, 6, 25)) == []

    later = await ReminderService.send_reminders(db, world.manager, now=datetime(2024, 6, 28))
    assert [r.reminder_type for r in later] == [ReminderType.FINAL_NOTICE]


@pytest.mark.asyncio
async def test_only_overdue_unpaid_bills(db, seed, world):
    opted_out = await seed.user(UserRole.CUSTOMER, notify_email=False)
    partial = await seed.bill(opted_out, world.area, total="100.00", outstanding="40.00",
                              status=BillStatus.PARTIALLY_PAID)
    settled = await seed.user(UserRole.CUSTOMER)
    await seed.bill(settled, world.area, outstanding="0.00", status=BillStatus.PAID)
    await seed.bill(world.customer_user, world.area, due_date=date(2024, 7, 15), month=7)
    due_today = await seed.user(UserRole.CUSTOMER)
    await seed.bill(due_today, world.area, due_date=date(2024, 6, 20))

    reminders = await ReminderService.send_reminders(db, world.manager, now=JUNE_20)

    assert [r.bill_id for r in reminders] == [partial.id]
    assert reminders[0].delivery_method == DeliveryMethod.PRINT
    assert "of amount 40.00" in reminders[0].message


@pytest.mark.asyncio
async def test_reminder_scope(db, seed, world):
    await seed.bill(world.customer_user, world.area)
    south = await seed.area(name="South")
    await seed.bill(world.customer_user, south)

    reminders = await ReminderService.send_reminders(db, world.manager, now=JUNE_20)
    assert len(reminders) == 1

    with pytest.raises(ForbiddenError):
        await ReminderService.send_reminders(db, world.manager, area_ids=[south.id], now=JUNE_20)
    with pytest.raises(ForbiddenError):
        await ReminderService.send_reminders(db, world.customer, now=JUNE_20)


@pytest.mark.asyncio
async def test_mark_sent(db, seed, world):
    await seed.bill(world.customer_user, world.area)
    reminder = (await ReminderService.send_reminders(db, world.manager, now=JUNE_20))[0]

    sent = await ReminderService.mark_sent(db, world.manager, reminder.id)
    assert sent.status == ReminderStatus.SENT
    assert sent.sent_at is not None

    with pytest.raises(ConflictError):
        await ReminderService.mark_sent(db, world.manager, reminder.id)


@pytest.mark.asyncio
async def test_mark_sent_limited_to_bill_area_managers(db, seed, world):
    await seed.bill(world.customer_user, world.area)
    reminder = (await ReminderService.send_reminders(db, world.manager, now=JUNE_20))[0]
    outsider = await seed.user(UserRole.MANAGER)
    await seed.area(managers=[outsider], name="South")
    outsider_actor = await IdentityService.resolve_actor(db, outsider.id)

    with pytest.raises(ForbiddenError):
        await ReminderService.mark_sent(db, outsider_actor, reminder.id)
    with pytest.raises(ForbiddenError):
        await ReminderService.mark_sent(db, world.customer, reminder.id)
    with pytest.raises(NotFoundError):
        await ReminderService.mark_sent(db, world.manager, uuid4())
    assert reminder.status == ReminderStatus.PENDING
