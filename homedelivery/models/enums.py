"""Centralized Enum Definitions"""

import enum


# Domain 1: Users & Areas
class UserRole(str, enum.Enum):
    """User roles; each maps to one actor variant"""
    MANAGER = "Manager"
    DELIVERER = "Deliverer"
    CUSTOMER = "Customer"


class PublicationType(str, enum.Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"


# Domain 2: Subscriptions
class SubscriptionStatus(str, enum.Enum):
    """
    Subscription lifecycle.

    PENDING is the holding state of a subscription materialized by a New
    change request that has not been approved yet.
    """
    PENDING = "Pending"
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELLED = "Cancelled"
    SUSPENDED = "Suspended"


class ChangeRequestType(str, enum.Enum):
    NEW = "New"
    UPDATE = "Update"
    CANCEL = "Cancel"


class ChangeRequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class CustomerActivityType(str, enum.Enum):
    NEW_SUBSCRIPTION = "New Subscription"
    CANCELLATION = "Cancellation"
    MODIFICATION = "Modification"
    PAUSE_REQUEST = "Pause Request"
    PAYMENT = "Payment"
    ADDRESS_UPDATE = "Address Update"


# Domain 3: Delivery
class RouteOptimization(str, enum.Enum):
    DISTANCE = "Distance"
    TIME = "Time"
    CUSTOM = "Custom"


class ScheduleStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class DeliveryItemStatus(str, enum.Enum):
    PENDING = "Pending"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    SKIPPED = "Skipped"


# Domain 4: Billing & Payments
class BillStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    CHEQUE = "Cheque"
    ONLINE = "Online"
    UPI = "UPI"
    CARD = "Card"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class ReminderType(str, enum.Enum):
    """Escalation ladder, in order"""
    FIRST_NOTICE = "First Notice"
    FINAL_NOTICE = "Final Notice"
    SUSPENSION_NOTICE = "Subscription Suspension Notice"


class ReminderStatus(str, enum.Enum):
    PENDING = "Pending"
    SENT = "Sent"
    RESOLVED = "Resolved"


class DeliveryMethod(str, enum.Enum):
    EMAIL = "Email"
    SMS = "SMS"
    PRINT = "Print"


# Domain 5: Deliverer commission
class DelivererPaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"


class DelivererPaymentMethod(str, enum.Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"
