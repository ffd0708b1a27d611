"""Domain 2: Subscriptions and Change Requests"""

from sqlalchemy import Column, String, Text, Integer, Date, DateTime, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from homedelivery.models.base import BaseModel, AreaScopedMixin, enum_column
from homedelivery.models.enums import (
    SubscriptionStatus,
    ChangeRequestType,
    ChangeRequestStatus,
    CustomerActivityType,
)


class Subscription(BaseModel, AreaScopedMixin):
    """
    Standing order for a publication at an address.
    Anchor entity for bills, bill items and delivery items.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_subscriptions_quantity_positive"),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    publication_id = Column(Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Nullable only while a New request is pending without an address
    address_id = Column(Uuid(as_uuid=True), ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=True, index=True)
    deliverer_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quantity = Column(Integer, default=1, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(
        enum_column(SubscriptionStatus, "subscription_status"),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    # Delivery preferences
    placement = Column(String(100), default="Door", nullable=False)
    additional_instructions = Column(Text, nullable=True)

    publication = relationship("Publication")
    address = relationship("Address")
    change_requests = relationship("SubscriptionChangeRequest", back_populates="subscription")
    pauses = relationship("SubscriptionPause", back_populates="subscription", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Subscription {self.publication_id} x{self.quantity} - {self.status}>"


class SubscriptionChangeRequest(BaseModel):
    """
    Customer-submitted proposal awaiting manager approval.
    Pending -> Approved | Rejected, exactly once.
    """
    __tablename__ = "subscription_change_requests"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    request_type = Column(enum_column(ChangeRequestType, "change_request_type"), nullable=False)
    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=True, index=True)
    publication_id = Column(Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="RESTRICT"), nullable=True, index=True)

    new_quantity = Column(Integer, nullable=True)
    new_address_id = Column(Uuid(as_uuid=True), ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    placement = Column(String(100), nullable=True)
    additional_instructions = Column(Text, nullable=True)

    status = Column(
        enum_column(ChangeRequestStatus, "change_request_status"),
        default=ChangeRequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    request_date = Column(DateTime, nullable=False)
    effective_date = Column(DateTime, nullable=False)
    comments = Column(Text, nullable=True)
    processed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    processed_date = Column(DateTime, nullable=True)

    subscription = relationship("Subscription", back_populates="change_requests")

    @property
    def has_preferences(self) -> bool:
        return self.placement is not None or self.additional_instructions is not None

    def __repr__(self) -> str:
        return f"<SubscriptionChangeRequest {self.request_type} - {self.status}>"


class SubscriptionPause(BaseModel):
    """Delivery hold on a subscription for a date range"""
    __tablename__ = "subscription_pauses"

    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)

    subscription = relationship("Subscription", back_populates="pauses")

    def __repr__(self) -> str:
        return f"<SubscriptionPause {self.start_date}..{self.end_date}>"


class CustomerActivity(BaseModel):
    """Audit trail of customer-initiated actions"""
    __tablename__ = "customer_activities"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(enum_column(CustomerActivityType, "customer_activity_type"), nullable=False)
    details = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CustomerActivity {self.activity_type}>"
