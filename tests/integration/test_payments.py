"""Payment reconciliation against bills."""

import pytest
from datetime import datetime
from decimal import Decimal
from sqlalchemy import select

from homedelivery.core.exceptions import ConflictError, ForbiddenError, ValidationFailedError
from homedelivery.models import PaymentReminder, CustomerActivity
from homedelivery.models.enums import (
    UserRole,
    BillStatus,
    PaymentMethod,
    PaymentStatus,
    ReminderType,
    ReminderStatus,
    DeliveryMethod,
    CustomerActivityType,
)
from homedelivery.services.identity_service import IdentityService
from homedelivery.services.payment_service import PaymentService
from homedelivery.utils.time import get_utc_now, period_key


@pytest.mark.asyncio
async def test_overpayment_is_clamped(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area, total="100.00")

    payment = await PaymentService.apply_payment(db, world.customer, bill.id, Decimal("150"), PaymentMethod.UPI)

    assert payment.amount == Decimal("150.00")
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.received_by is None
    assert bill.outstanding_amount == Decimal("0.00")
    assert bill.status == BillStatus.PAID

    now = get_utc_now()
    assert payment.receipt_number == f"RCP-{period_key(now.month, now.year)}-000001"

    activity = (await db.execute(select(CustomerActivity))).scalars().one()
    assert activity.activity_type == CustomerActivityType.PAYMENT


@pytest.mark.asyncio
async def test_partial_payments(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area, total="100.00")

    first = await PaymentService.apply_payment(db, world.customer, bill.id, "40.00", "Cash")
    assert bill.outstanding_amount == Decimal("60.00")
    assert bill.status == BillStatus.PARTIALLY_PAID

    second = await PaymentService.apply_payment(db, world.customer, bill.id, "60.00", PaymentMethod.CARD)
    assert bill.outstanding_amount == Decimal("0.00")
    assert bill.status == BillStatus.PAID
    assert first.receipt_number != second.receipt_number

    with pytest.raises(ConflictError):
        await PaymentService.apply_payment(db, world.customer, bill.id, "1.00", PaymentMethod.CASH)


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-5", "abc"])
async def test_invalid_amount(db, seed, world, amount):
    bill = await seed.bill(world.customer_user, world.area)
    with pytest.raises(ValidationFailedError):
        await PaymentService.apply_payment(db, world.customer, bill.id, amount, PaymentMethod.CASH)


@pytest.mark.asyncio
async def test_unknown_method(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area)
    with pytest.raises(ValidationFailedError):
        await PaymentService.apply_payment(db, world.customer, bill.id, "10", "Barter")


@pytest.mark.asyncio
async def test_customer_cannot_pay_foreign_bill(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area)
    stranger_user = await seed.user(UserRole.CUSTOMER)
    stranger = await IdentityService.resolve_actor(db, stranger_user.id)

    with pytest.raises(ForbiddenError):
        await PaymentService.apply_payment(db, stranger, bill.id, "10", PaymentMethod.CASH)
    assert bill.outstanding_amount == Decimal("100.00")


@pytest.mark.asyncio
async def test_manager_records_payment(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area)

    payment = await PaymentService.apply_payment(
        db, world.manager, bill.id, "100", PaymentMethod.CHEQUE, reference="CHQ-1001"
    )

    assert payment.received_by == world.manager_user.id
    assert payment.user_id == world.customer_user.id
    assert payment.reference_number == "CHQ-1001"

    with pytest.raises(ForbiddenError):
        await PaymentService.apply_payment(db, world.deliverer, bill.id, "1", PaymentMethod.CASH)


@pytest.mark.asyncio
async def test_full_payment_resolves_open_reminders(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area)
    reminder = await seed.add(PaymentReminder(
        bill_id=bill.id,
        user_id=bill.user_id,
        reminder_date=datetime(2024, 6, 20),
        reminder_type=ReminderType.FIRST_NOTICE,
        message="Overdue",
        status=ReminderStatus.SENT,
        delivery_method=DeliveryMethod.EMAIL,
    ))

    await PaymentService.apply_payment(db, world.customer, bill.id, "100", PaymentMethod.ONLINE)

    await db.refresh(reminder)
    assert reminder.status == ReminderStatus.RESOLVED


@pytest.mark.asyncio
async def test_list_payments_two_step_scope(db, seed, world):
    bill = await seed.bill(world.customer_user, world.area)
    await PaymentService.apply_payment(db, world.customer, bill.id, "30", PaymentMethod.CASH)
    await PaymentService.apply_payment(db, world.customer, bill.id, "20", PaymentMethod.CASH)

    assert len(await PaymentService.list_payments(db, world.customer)) == 2
    assert len(await PaymentService.list_payments(db, world.manager)) == 2
    assert await PaymentService.list_payments(db, world.customer, start=datetime(2999, 1, 1)) == []

    outsider = await seed.user(UserRole.MANAGER)
    outsider_actor = await IdentityService.resolve_actor(db, outsider.id)
    assert await PaymentService.list_payments(db, outsider_actor) == []
