"""Monthly deliverer commission."""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, func

from homedelivery.core.exceptions import ConflictError, ForbiddenError, ValidationFailedError
from homedelivery.models import DelivererPayment
from homedelivery.models.enums import (
    UserRole,
    DeliveryItemStatus,
    DelivererPaymentStatus,
    DelivererPaymentMethod,
)
from homedelivery.services.commission_service import CommissionService
from homedelivery.services.identity_service import IdentityService


async def _june_deliveries(seed, world):
    """Two qualifying June deliveries of 2 x 50, plus items that must not count"""
    subscription = await seed.subscription(world.customer_user, world.paper, world.address, quantity=2)
    other = await seed.subscription(world.customer_user, world.paper, world.address, quantity=5)

    first_day = await seed.schedule(world.personnel, world.area, date(2024, 6, 1))
    await seed.delivered_item(first_day, subscription, datetime(2024, 6, 1, 0, 0))

    last_day = await seed.schedule(world.personnel, world.area, date(2024, 6, 30))
    await seed.delivered_item(last_day, subscription, datetime(2024, 6, 30, 23, 30))
    await seed.delivered_item(last_day, other, datetime(2024, 6, 30, 6, 0), status=DeliveryItemStatus.FAILED)

    next_month = await seed.schedule(world.personnel, world.area, date(2024, 7, 1))
    await seed.delivered_item(next_month, subscription, datetime(2024, 7, 1, 0, 0))


@pytest.mark.asyncio
async def test_commission_covers_whole_month(db, seed, world):
    await _june_deliveries(seed, world)

    payments = await CommissionService.process_payments(db, world.manager, 6, 2024)

    assert len(payments) == 1
    payment = payments[0]
    assert payment.personnel_id == world.personnel.id
    assert payment.amount == Decimal("5.00")
    assert payment.commission_rate == Decimal("2.5")
    assert payment.status == DelivererPaymentStatus.PENDING
    assert len(payment.details) == 1
    detail = payment.details[0]
    assert detail.publication_id == world.paper.id
    assert detail.area_id == world.area.id
    assert detail.delivery_count == 2
    assert detail.publication_value == Decimal("200.00")
    assert detail.commission_amount == Decimal("5.00")


@pytest.mark.asyncio
async def test_commission_run_is_once_per_personnel(db, seed, world):
    await _june_deliveries(seed, world)
    await CommissionService.process_payments(db, world.manager, 6, 2024)

    assert await CommissionService.process_payments(db, world.manager, 6, 2024) == []

    # a deliverer added later is filled in without touching the existing payout
    newcomer = await seed.user(UserRole.DELIVERER)
    await seed.personnel(newcomer, areas=[world.area], commission_rate="3")
    added = await CommissionService.process_payments(db, world.manager, 6, 2024)
    assert len(added) == 1
    assert added[0].amount == Decimal("0.00")
    assert await db.scalar(select(func.count()).select_from(DelivererPayment)) == 2


@pytest.mark.asyncio
async def test_commission_run_guards(db, seed, world):
    with pytest.raises(ForbiddenError):
        await CommissionService.process_payments(db, world.deliverer, 6, 2024)
    with pytest.raises(ForbiddenError):
        await CommissionService.process_payments(db, world.manager, 6, 2024, area_ids=[uuid4()])
    with pytest.raises(ValidationFailedError):
        await CommissionService.process_payments(db, world.manager, 0, 2024)

    outsider = await seed.user(UserRole.MANAGER)
    outsider_actor = await IdentityService.resolve_actor(db, outsider.id)
    assert await CommissionService.process_payments(db, outsider_actor, 6, 2024) == []


@pytest.mark.asyncio
async def test_mark_paid_once(db, seed, world):
    await _june_deliveries(seed, world)
    payment = (await CommissionService.process_payments(db, world.manager, 6, 2024))[0]

    paid = await CommissionService.mark_paid(
        db, world.manager, payment.id, DelivererPaymentMethod.CHEQUE, transaction_id="TXN-77"
    )
    assert paid.status == DelivererPaymentStatus.PAID
    assert paid.payment_method == DelivererPaymentMethod.CHEQUE
    assert paid.transaction_id == "TXN-77"
    assert paid.payment_date is not None

    with pytest.raises(ConflictError):
        await CommissionService.mark_paid(db, world.manager, payment.id)


@pytest.mark.asyncio
async def test_mark_paid_requires_shared_area(db, seed, world):
    payment = (await CommissionService.process_payments(db, world.manager, 6, 2024))[0]
    outsider = await seed.user(UserRole.MANAGER)
    await seed.area(managers=[outsider], name="South")
    outsider_actor = await IdentityService.resolve_actor(db, outsider.id)

    with pytest.raises(ForbiddenError):
        await CommissionService.mark_paid(db, outsider_actor, payment.id)
    assert payment.status == DelivererPaymentStatus.PENDING


@pytest.mark.asyncio
async def test_earnings_for_deliverer(db, seed, world):
    placeholder = await CommissionService.get_earnings(db, world.deliverer, 6, 2024)
    assert placeholder.amount == Decimal("0.00")
    assert placeholder.details == []
    assert placeholder.commission_rate == Decimal("2.5")

    await _june_deliveries(seed, world)
    await CommissionService.process_payments(db, world.manager, 6, 2024)

    earnings = await CommissionService.get_earnings(db, world.deliverer, 6, 2024)
    assert earnings.amount == Decimal("5.00")
    assert len(earnings.details) == 1

    with pytest.raises(ForbiddenError):
        await CommissionService.get_earnings(db, world.manager, 6, 2024)
