"""Models Package - Export all models for easy imports"""

from homedelivery.models.base import BaseModel, AreaScopedMixin, StatusMixin
from homedelivery.models.enums import *
from homedelivery.models.area import (
    User,
    Area,
    Address,
    Publication,
    area_managers,
    area_customers,
    area_publications,
)
from homedelivery.models.subscription import (
    Subscription,
    SubscriptionChangeRequest,
    SubscriptionPause,
    CustomerActivity,
)
from homedelivery.models.delivery import (
    DeliveryPersonnel,
    DeliveryRoute,
    RouteAddress,
    DeliverySchedule,
    DeliveryItem,
    personnel_areas,
)
from homedelivery.models.billing import Bill, BillItem, Payment, PaymentReminder, DocumentSequence
from homedelivery.models.commission import DelivererPayment, DelivererPaymentDetail


__all__ = [
    # Base classes
    "BaseModel",
    "AreaScopedMixin",
    "StatusMixin",

    # Users & areas
    "User",
    "Area",
    "Address",
    "Publication",
    "area_managers",
    "area_customers",
    "area_publications",

    # Subscriptions
    "Subscription",
    "SubscriptionChangeRequest",
    "SubscriptionPause",
    "CustomerActivity",

    # Delivery
    "DeliveryPersonnel",
    "DeliveryRoute",
    "RouteAddress",
    "DeliverySchedule",
    "DeliveryItem",
    "personnel_areas",

    # Billing
    "Bill",
    "BillItem",
    "Payment",
    "PaymentReminder",
    "DocumentSequence",

    # Commission
    "DelivererPayment",
    "DelivererPaymentDetail",
]
