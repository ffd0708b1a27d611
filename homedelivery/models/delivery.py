"""Domain 3: Delivery Personnel, Routes, Schedules and Items"""

from decimal import Decimal

from sqlalchemy import (
    Column, String, Text, Integer, Date, DateTime, Numeric, Table, ForeignKey, Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from homedelivery.config import settings
from homedelivery.models.base import BaseModel, AreaScopedMixin, StatusMixin, enum_column
from homedelivery.models.enums import RouteOptimization, ScheduleStatus, DeliveryItemStatus


class DeliveryPersonnel(BaseModel, StatusMixin):
    """
    Deliverer profile. Assigned areas bound what the deliverer may serve;
    the commission rate is a percentage of delivered publication value.
    """
    __tablename__ = "delivery_personnel"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    manager_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    joining_date = Column(Date, nullable=False)
    commission_rate = Column(
        Numeric(5, 2),
        default=lambda: Decimal(str(settings.DEFAULT_COMMISSION_RATE)),
        nullable=False,
    )

    # Bank details
    account_name = Column(String(255), nullable=True)
    account_number = Column(String(64), nullable=True)
    bank_name = Column(String(255), nullable=True)
    ifsc_code = Column(String(32), nullable=True)

    areas = relationship("Area", secondary="personnel_areas")

    @property
    def area_ids(self) -> frozenset:
        return frozenset(area.id for area in self.areas)

    def __repr__(self) -> str:
        return f"<DeliveryPersonnel {self.user_id} @ {self.commission_rate}%>"


class DeliveryRoute(BaseModel, AreaScopedMixin, StatusMixin):
    """Ordered stop list for one personnel within one area"""
    __tablename__ = "delivery_routes"

    personnel_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_personnel.id", ondelete="CASCADE"), nullable=False, index=True)
    route_name = Column(String(255), nullable=False)
    route_description = Column(Text, nullable=True)
    optimization_criteria = Column(
        enum_column(RouteOptimization, "route_optimization"),
        default=RouteOptimization.DISTANCE,
        nullable=False,
    )

    stops = relationship(
        "RouteAddress",
        back_populates="route",
        order_by="RouteAddress.sequence_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<DeliveryRoute {self.route_name}>"


class RouteAddress(BaseModel):
    """One stop on a route; sequence numbers strictly increase along the route"""
    __tablename__ = "route_addresses"
    __table_args__ = (
        UniqueConstraint("route_id", "sequence_number", name="uq_route_addresses_route_sequence"),
    )

    route_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_routes.id", ondelete="CASCADE"), nullable=False, index=True)
    address_id = Column(Uuid(as_uuid=True), ForeignKey("addresses.id", ondelete="CASCADE"), nullable=False)
    sequence_number = Column(Integer, nullable=False)

    route = relationship("DeliveryRoute", back_populates="stops")

    def __repr__(self) -> str:
        return f"<RouteAddress #{self.sequence_number}>"


class DeliverySchedule(BaseModel, AreaScopedMixin):
    """A personnel's route assignment for one date"""
    __tablename__ = "delivery_schedules"
    __table_args__ = (
        UniqueConstraint("personnel_id", "date", name="uq_delivery_schedules_personnel_date"),
    )

    personnel_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_personnel.id", ondelete="CASCADE"), nullable=False, index=True)
    route_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_routes.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(
        enum_column(ScheduleStatus, "schedule_status"),
        default=ScheduleStatus.PENDING,
        nullable=False,
    )
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    weather_conditions = Column(String(255), nullable=True)

    items = relationship("DeliveryItem", back_populates="schedule", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<DeliverySchedule {self.date} - {self.status}>"


class DeliveryItem(BaseModel):
    """
    Unit of delivery work derived from one subscription for one schedule.
    Pending -> Delivered | Failed | Skipped, terminal once set.
    """
    __tablename__ = "delivery_items"
    __table_args__ = (
        UniqueConstraint("schedule_id", "subscription_id", name="uq_delivery_items_schedule_subscription"),
    )

    schedule_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    address_id = Column(Uuid(as_uuid=True), ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=False)
    publication_id = Column(Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, default=1, nullable=False)
    sequence_number = Column(Integer, nullable=True)
    status = Column(
        enum_column(DeliveryItemStatus, "delivery_item_status"),
        default=DeliveryItemStatus.PENDING,
        nullable=False,
        index=True,
    )
    delivery_notes = Column(Text, nullable=True)
    delivery_time = Column(DateTime, nullable=True, index=True)
    photo_proof = Column(String(500), nullable=True)

    schedule = relationship("DeliverySchedule", back_populates="items")
    publication = relationship("Publication")

    def __repr__(self) -> str:
        return f"<DeliveryItem {self.subscription_id} - {self.status}>"


# Association table for DeliveryPersonnel <-> assigned Area
personnel_areas = Table(
    "personnel_areas",
    BaseModel.metadata,
    Column("personnel_id", Uuid(as_uuid=True), ForeignKey("delivery_personnel.id", ondelete="CASCADE"), primary_key=True),
    Column("area_id", Uuid(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), primary_key=True),
)
