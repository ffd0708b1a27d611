"""Monthly billing runs."""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, func

from homedelivery.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from homedelivery.models import Bill, BillItem
from homedelivery.models.enums import UserRole, SubscriptionStatus, BillStatus, ChangeRequestStatus
from homedelivery.schemas.subscription import CancelSubscriptionRequest
from homedelivery.services.billing_service import BillingService
from homedelivery.services.identity_service import IdentityService
from homedelivery.services.subscription_service import SubscriptionService


async def _count(db, model):
    return await db.scalar(select(func.count()).select_from(model))


@pytest.mark.asyncio
async def test_single_subscription_bill(db, seed, world):
    await seed.subscription(world.customer_user, world.paper, world.address, quantity=2)

    result = await BillingService.generate_bills(db, world.manager, 6, 2024)

    assert result.bills_created == 1
    assert result.total_billed == Decimal("100.00")
    bill = await BillingService.get_bill(db, world.customer, result.bill_ids[0])
    assert bill.total_amount == Decimal("100.00")
    assert bill.outstanding_amount == Decimal("100.00")
    assert bill.status == BillStatus.UNPAID
    assert bill.bill_number == "BILL-202406-000001"
    assert bill.due_date == date(2024, 6, 15)
    assert len(bill.items) == 1
    item = bill.items[0]
    assert item.total_price == Decimal("100.00")
    assert item.unit_price == Decimal("50.00")
    assert (item.period_from, item.period_to) == (date(2024, 6, 1), date(2024, 6, 30))


@pytest.mark.asyncio
async def test_groups_by_customer_and_area(db, seed, world):
    magazine = await seed.publication("120.00", name="Weekly Review")
    await seed.subscription(world.customer_user, world.paper, world.address, quantity=1)
    await seed.subscription(world.customer_user, magazine, world.address, quantity=1)

    neighbour = await seed.user(UserRole.CUSTOMER)
    neighbour_address = await seed.address(neighbour, world.area)
    await seed.subscription(neighbour, world.paper, neighbour_address, quantity=3)

    result = await BillingService.generate_bills(db, world.manager, 6, 2024)

    assert result.bills_created == 2
    assert result.total_billed == Decimal("320.00")
    bills = await BillingService.list_bills(db, world.manager, month=6, year=2024)
    assert sorted(b.bill_number for b in bills) == ["BILL-202406-000001", "BILL-202406-000002"]
    for bill in bills:
        assert sum(i.total_price for i in bill.items) == bill.total_amount == bill.outstanding_amount
    by_user = {b.user_id: b for b in bills}
    assert len(by_user[world.customer_user.id].items) == 2
    assert by_user[neighbour.id].total_amount == Decimal("150.00")


@pytest.mark.asyncio
async def test_only_active_subscriptions_are_billed(db, seed, world):
    await seed.subscription(world.customer_user, world.paper, world.address, status=SubscriptionStatus.PAUSED)
    await seed.subscription(world.customer_user, world.paper, world.address, status=SubscriptionStatus.PENDING)

    result = await BillingService.generate_bills(db, world.manager, 6, 2024)

    assert result.bills_created == 0
    assert await _count(db, Bill) == 0


@pytest.mark.asyncio
async def test_rerun_for_billed_period_conflicts(db, seed, world):
    await seed.subscription(world.customer_user, world.paper, world.address, quantity=2)
    await BillingService.generate_bills(db, world.manager, 6, 2024)

    with pytest.raises(ConflictError):
        await BillingService.generate_bills(db, world.manager, 6, 2024)

    assert await _count(db, Bill) == 1
    assert await _count(db, BillItem) == 1

    # next period is independent and restarts numbering
    result = await BillingService.generate_bills(db, world.manager, 7, 2024)
    bill = await BillingService.get_bill(db, world.manager, result.bill_ids[0])
    assert bill.bill_number == "BILL-202407-000001"


@pytest.mark.asyncio
async def test_cancelled_subscription_excluded_after_approval(db, seed, world):
    subscription = await seed.subscription(world.customer_user, world.paper, world.address)
    request = await SubscriptionService.submit_request(
        db, world.customer,
        CancelSubscriptionRequest(subscription_id=subscription.id, effective_date=datetime(2024, 5, 31)),
    )
    await SubscriptionService.decide(db, world.manager, request.id, ChangeRequestStatus.APPROVED)

    result = await BillingService.generate_bills(db, world.manager, 6, 2024)

    assert result.bills_created == 0


@pytest.mark.asyncio
async def test_requested_scope_outside_manager_areas(db, world):
    with pytest.raises(ForbiddenError):
        await BillingService.generate_bills(db, world.manager, 6, 2024, area_ids=[uuid4()])


@pytest.mark.asyncio
async def test_invalid_period(db, world):
    with pytest.raises(ValidationFailedError):
        await BillingService.generate_bills(db, world.manager, 13, 2024)


@pytest.mark.asyncio
async def test_only_managers_generate_bills(db, world):
    with pytest.raises(ForbiddenError):
        await BillingService.generate_bills(db, world.customer, 6, 2024)


@pytest.mark.asyncio
async def test_bill_visibility(db, seed, world):
    await seed.subscription(world.customer_user, world.paper, world.address)
    result = await BillingService.generate_bills(db, world.manager, 6, 2024)
    bill_id = result.bill_ids[0]

    stranger_user = await seed.user(UserRole.CUSTOMER)
    stranger = await IdentityService.resolve_actor(db, stranger_user.id)

    assert [b.id for b in await BillingService.list_bills(db, world.customer)] == [bill_id]
    assert await BillingService.list_bills(db, stranger) == []
    with pytest.raises(ForbiddenError):
        await BillingService.get_bill(db, stranger, bill_id)
    with pytest.raises(NotFoundError):
        await BillingService.get_bill(db, world.customer, uuid4())
    with pytest.raises(ForbiddenError):
        await BillingService.list_bills(db, world.deliverer)
