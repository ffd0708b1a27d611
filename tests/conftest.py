"""Shared pytest fixtures: an in-memory database per test and seed helpers."""

import os
import uuid
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from dotenv import load_dotenv

# Load .env first so TEST_DATABASE_URL can override; settings need DATABASE_URL at import
load_dotenv()
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from homedelivery.database import Base
from homedelivery.models import (
    User,
    Area,
    Address,
    Publication,
    Subscription,
    DeliveryPersonnel,
    DeliveryRoute,
    RouteAddress,
    DeliverySchedule,
    DeliveryItem,
    Bill,
)
from homedelivery.models.enums import (
    UserRole,
    PublicationType,
    SubscriptionStatus,
    BillStatus,
    ScheduleStatus,
    DeliveryItemStatus,
)
from homedelivery.services.identity_service import IdentityService


@pytest.fixture
async def db():
    """Fresh schema on a single shared in-memory connection."""
    url = os.environ["DATABASE_URL"]
    engine_options = {}
    if url.startswith("sqlite"):
        engine_options = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    engine = create_async_engine(url, **engine_options)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        yield session

    await engine.dispose()


class Seed:
    """Inserts committed rows with sensible defaults."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def user(self, role: UserRole, notify_email: bool = True, is_active: bool = True) -> User:
        suffix = str(uuid.uuid4())[:8]
        return await self.add(User(
            username=f"{role.value.lower()}_{suffix}",
            email=f"{role.value.lower()}_{suffix}@example.com",
            first_name=role.value,
            last_name=suffix,
            role=role,
            notify_email=notify_email,
            is_active=is_active,
        ))

    async def publication(self, price="50.00", name="Daily Herald") -> Publication:
        return await self.add(Publication(
            name=name,
            language="English",
            price=Decimal(price),
            publication_type=PublicationType.DAILY,
            publication_days=["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
        ))

    async def area(self, managers=(), customers=(), publications=(), name="North") -> Area:
        return await self.add(Area(
            name=name,
            city="Pune",
            state="MH",
            postal_codes=["411001"],
            managers=list(managers),
            customers=list(customers),
            publications=list(publications),
        ))

    async def address(self, user: User, area: Area, is_default: bool = False, is_active: bool = True,
                      delivery_instructions=None) -> Address:
        return await self.add(Address(
            user_id=user.id,
            area_id=area.id,
            street_address=f"{uuid.uuid4().hex[:4]} Main Road",
            city="Pune",
            state="MH",
            postal_code="411001",
            is_default=is_default,
            is_active=is_active,
            delivery_instructions=delivery_instructions,
        ))

    async def personnel(self, user: User, areas=(), commission_rate="2.5", is_active: bool = True) -> DeliveryPersonnel:
        return await self.add(DeliveryPersonnel(
            user_id=user.id,
            joining_date=date(2024, 1, 1),
            commission_rate=Decimal(commission_rate),
            areas=list(areas),
            is_active=is_active,
        ))

    async def subscription(self, user: User, publication: Publication, address: Address, quantity: int = 1,
                           status: SubscriptionStatus = SubscriptionStatus.ACTIVE) -> Subscription:
        return await self.add(Subscription(
            user_id=user.id,
            publication_id=publication.id,
            address_id=address.id,
            area_id=address.area_id,
            quantity=quantity,
            status=status,
            start_date=date(2024, 1, 1),
        ))

    async def route(self, personnel: DeliveryPersonnel, area: Area, addresses=()) -> DeliveryRoute:
        return await self.add(DeliveryRoute(
            personnel_id=personnel.id,
            area_id=area.id,
            route_name="Morning round",
            stops=[
                RouteAddress(address_id=address.id, sequence_number=position)
                for position, address in enumerate(addresses, start=1)
            ],
        ))

    async def bill(self, user: User, area: Area, total="100.00", outstanding=None,
                   status: BillStatus = BillStatus.UNPAID, due_date=date(2024, 6, 15),
                   month: int = 6, year: int = 2024) -> Bill:
        suffix = uuid.uuid4().hex[:6]
        return await self.add(Bill(
            user_id=user.id,
            area_id=area.id,
            bill_number=f"BILL-SEED-{suffix}",
            bill_date=date(year, month, 1),
            bill_month=month,
            bill_year=year,
            total_amount=Decimal(total),
            outstanding_amount=Decimal(outstanding if outstanding is not None else total),
            due_date=due_date,
            status=status,
        ))

    async def delivered_item(self, schedule: DeliverySchedule, subscription: Subscription,
                             delivery_time: datetime, status=DeliveryItemStatus.DELIVERED) -> DeliveryItem:
        return await self.add(DeliveryItem(
            schedule_id=schedule.id,
            subscription_id=subscription.id,
            address_id=subscription.address_id,
            publication_id=subscription.publication_id,
            quantity=subscription.quantity,
            status=status,
            delivery_time=delivery_time,
        ))

    async def schedule(self, personnel: DeliveryPersonnel, area: Area, on: date, route=None) -> DeliverySchedule:
        return await self.add(DeliverySchedule(
            personnel_id=personnel.id,
            route_id=route.id if route else None,
            area_id=area.id,
            date=on,
            status=ScheduleStatus.PENDING,
        ))


@pytest.fixture
def seed(db) -> Seed:
    return Seed(db)


@pytest.fixture
async def world(db, seed):
    """
    One area with a manager, a customer holding a default address, a
    publication priced at 50 and an active deliverer assigned to the area.
    """
    manager = await seed.user(UserRole.MANAGER)
    customer = await seed.user(UserRole.CUSTOMER)
    deliverer = await seed.user(UserRole.DELIVERER)
    paper = await seed.publication("50.00")
    area = await seed.area(managers=[manager], customers=[customer], publications=[paper])
    address = await seed.address(customer, area, is_default=True, delivery_instructions="Leave at gate")
    personnel = await seed.personnel(deliverer, areas=[area])

    return SimpleNamespace(
        area=area,
        paper=paper,
        address=address,
        personnel=personnel,
        manager_user=manager,
        customer_user=customer,
        deliverer_user=deliverer,
        manager=await IdentityService.resolve_actor(db, manager.id),
        customer=await IdentityService.resolve_actor(db, customer.id),
        deliverer=await IdentityService.resolve_actor(db, deliverer.id),
    )
