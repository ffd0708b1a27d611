"""Domain 4: Billing, Payments and Reminders"""

from sqlalchemy import (
    Column, String, Text, Integer, Date, DateTime, Numeric, ForeignKey, Uuid,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship

from homedelivery.models.base import BaseModel, AreaScopedMixin, enum_column
from homedelivery.models.enums import (
    BillStatus,
    PaymentMethod,
    PaymentStatus,
    ReminderType,
    ReminderStatus,
    DeliveryMethod,
)


class Bill(BaseModel, AreaScopedMixin):
    """
    Monthly invoice for one customer in one area.
    Exactly one bill per (customer, area, month, year).
    """
    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint("user_id", "area_id", "bill_month", "bill_year", name="uq_bills_customer_area_period"),
        CheckConstraint("outstanding_amount >= 0", name="ck_bills_outstanding_non_negative"),
        CheckConstraint("outstanding_amount <= total_amount", name="ck_bills_outstanding_within_total"),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    bill_number = Column(String(50), unique=True, nullable=False)
    bill_date = Column(Date, nullable=False)
    bill_month = Column(Integer, nullable=False)
    bill_year = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    outstanding_amount = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(enum_column(BillStatus, "bill_status"), default=BillStatus.UNPAID, nullable=False, index=True)

    items = relationship("BillItem", back_populates="bill", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="bill")
    reminders = relationship("PaymentReminder", back_populates="bill")

    def __repr__(self) -> str:
        return f"<Bill {self.bill_number} {self.total_amount} - {self.status}>"


class BillItem(BaseModel):
    """Line item for one subscription; total_price = quantity x unit_price"""
    __tablename__ = "bill_items"

    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)
    publication_id = Column(Uuid(as_uuid=True), ForeignKey("publications.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    period_from = Column(Date, nullable=False)
    period_to = Column(Date, nullable=False)

    bill = relationship("Bill", back_populates="items")

    def __repr__(self) -> str:
        return f"<BillItem {self.quantity} x {self.unit_price}>"


class Payment(BaseModel):
    """Money applied against exactly one bill"""
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    received_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    payment_date = Column(DateTime, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(enum_column(PaymentMethod, "payment_method"), nullable=False)
    reference_number = Column(String(100), nullable=True)
    status = Column(enum_column(PaymentStatus, "payment_status"), default=PaymentStatus.COMPLETED, nullable=False)
    receipt_number = Column(String(50), unique=True, nullable=False)

    bill = relationship("Bill", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment {self.receipt_number} {self.amount}>"


class PaymentReminder(BaseModel):
    """Notice of an overdue balance; sending is left to the notification dispatcher"""
    __tablename__ = "payment_reminders"

    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reminder_date = Column(DateTime, nullable=False, index=True)
    reminder_type = Column(enum_column(ReminderType, "reminder_type"), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(enum_column(ReminderStatus, "reminder_status"), default=ReminderStatus.PENDING, nullable=False)
    delivery_method = Column(enum_column(DeliveryMethod, "delivery_method"), default=DeliveryMethod.PRINT, nullable=False)
    sent_at = Column(DateTime, nullable=True)

    bill = relationship("Bill", back_populates="reminders")

    def __repr__(self) -> str:
        return f"<PaymentReminder {self.reminder_type} - {self.status}>"


class DocumentSequence(BaseModel):
    """
    Monotonic counter per numbering scope (e.g. "BILL-202406").
    Backs collision-free bill and receipt numbers.
    """
    __tablename__ = "document_sequences"

    scope = Column(String(50), unique=True, nullable=False)
    last_value = Column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentSequence {self.scope}={self.last_value}>"
