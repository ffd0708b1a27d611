"""
Area Authorization Guard.

Single source of truth for what each actor variant may touch. Every check
is a pure lookup over an already-resolved actor and already-loaded records:
no I/O, no side effects. Absence of a match is always a denial.
"""

from typing import Iterable, Optional, FrozenSet
from uuid import UUID

from homedelivery.core.exceptions import ForbiddenError
from homedelivery.core.logging import get_logger
from homedelivery.schemas.identity import Actor, ManagerActor, DelivererActor, CustomerActor

logger = get_logger(__name__)


class AreaGuard:
    @staticmethod
    def can_access_area(actor: Actor, area_id: Optional[UUID]) -> bool:
        if area_id is None:
            return False
        return area_id in actor.area_ids

    @staticmethod
    def can_access_owned(actor: Actor, owner_id: UUID, area_id: Optional[UUID]) -> bool:
        """
        Records owned by a customer (subscriptions, bills, requests).
        Customers are restricted to their own; staff go by the record's area.
        """
        if isinstance(actor, CustomerActor):
            return owner_id == actor.user_id
        if isinstance(actor, (ManagerActor, DelivererActor)):
            return AreaGuard.can_access_area(actor, area_id)
        return False

    @staticmethod
    def can_access_subscription(actor: Actor, subscription) -> bool:
        return AreaGuard.can_access_owned(actor, subscription.user_id, subscription.area_id)

    @staticmethod
    def can_access_bill(actor: Actor, bill) -> bool:
        return AreaGuard.can_access_owned(actor, bill.user_id, bill.area_id)

    @staticmethod
    def can_access_personnel(actor: Actor, personnel) -> bool:
        if isinstance(actor, DelivererActor):
            return personnel.id == actor.personnel_id
        if isinstance(actor, ManagerActor):
            return bool(actor.area_ids & personnel.area_ids)
        return False

    @staticmethod
    def scope_areas(actor: Actor, requested: Optional[Iterable[UUID]] = None) -> FrozenSet[UUID]:
        """Intersect a requested area scope with the areas the actor controls"""
        if requested is None:
            return actor.area_ids
        return actor.area_ids & frozenset(requested)

    # --- Raising variants ---

    @staticmethod
    def deny(actor: Actor, message: str) -> ForbiddenError:
        logger.warning(
            "Authorization denied",
            extra={"user_id": str(actor.user_id), "actor": type(actor).__name__, "reason": message},
        )
        return ForbiddenError(message)

    @staticmethod
    def require_area(actor: Actor, area_id: Optional[UUID], message: str = "Not authorized for this area") -> None:
        if not AreaGuard.can_access_area(actor, area_id):
            raise AreaGuard.deny(actor, message)

    @staticmethod
    def require_subscription(actor: Actor, subscription) -> None:
        if not AreaGuard.can_access_subscription(actor, subscription):
            raise AreaGuard.deny(actor, "Not authorized for this subscription")

    @staticmethod
    def require_bill(actor: Actor, bill) -> None:
        if not AreaGuard.can_access_bill(actor, bill):
            raise AreaGuard.deny(actor, "Not authorized for this bill")

    @staticmethod
    def require_personnel(actor: Actor, personnel) -> None:
        if not AreaGuard.can_access_personnel(actor, personnel):
            raise AreaGuard.deny(actor, "Not authorized for this delivery personnel")

    @staticmethod
    def require_manager(actor: Actor) -> ManagerActor:
        if not isinstance(actor, ManagerActor):
            raise AreaGuard.deny(actor, "Manager role required")
        return actor

    @staticmethod
    def require_deliverer(actor: Actor) -> DelivererActor:
        if not isinstance(actor, DelivererActor):
            raise AreaGuard.deny(actor, "Deliverer role required")
        return actor

    @staticmethod
    def require_customer(actor: Actor) -> CustomerActor:
        if not isinstance(actor, CustomerActor):
            raise AreaGuard.deny(actor, "Customer role required")
        return actor
