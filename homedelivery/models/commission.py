"""Domain 5: Deliverer Commission Payouts"""

from sqlalchemy import Column, String, Integer, DateTime, Numeric, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from homedelivery.models.base import BaseModel, AreaScopedMixin, enum_column
from homedelivery.models.enums import DelivererPaymentStatus, DelivererPaymentMethod


class DelivererPayment(BaseModel):
    """Commission payout for one personnel and one month"""
    __tablename__ = "deliverer_payments"
    __table_args__ = (
        UniqueConstraint("personnel_id", "payment_month", "payment_year", name="uq_deliverer_payments_personnel_period"),
    )

    personnel_id = Column(Uuid(as_uuid=True), ForeignKey("delivery_personnel.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_month = Column(Integer, nullable=False)
    payment_year = Column(Integer, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)
    payment_date = Column(DateTime, nullable=True)
    status = Column(
        enum_column(DelivererPaymentStatus, "deliverer_payment_status"),
        default=DelivererPaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method = Column(
        enum_column(DelivererPaymentMethod, "deliverer_payment_method"),
        default=DelivererPaymentMethod.BANK_TRANSFER,
        nullable=False,
    )
    transaction_id = Column(String(100), nullable=True)

    details = relationship("DelivererPaymentDetail", back_populates="payment", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<DelivererPayment {self.payment_year}-{self.payment_month:02d} {self.amount}>"


class DelivererPaymentDetail(BaseModel, AreaScopedMixin):
    """Per-publication breakdown of a commission payout"""
    __tablename__ = "deliverer_payment_details"

    payment_id = Column(Uuid(as_uuid=True), ForeignKey("deliverer_payments.id", ondelete="CASCADE"), nullable=False, index=True)
    publication_id = Column(Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="RESTRICT"), nullable=False)
    delivery_count = Column(Integer, nullable=False)
    publication_value = Column(Numeric(12, 2), nullable=False)
    commission_amount = Column(Numeric(10, 2), nullable=False)

    payment = relationship("DelivererPayment", back_populates="details")

    def __repr__(self) -> str:
        return f"<DelivererPaymentDetail {self.publication_id} x{self.delivery_count}>"
