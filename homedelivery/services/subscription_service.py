"""Subscription Service - change requests and the subscription state machine"""

from datetime import timedelta
from typing import Optional, List, Dict, FrozenSet
from uuid import UUID
from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from homedelivery.config import settings
from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import (
    NotFoundError,
    ValidationFailedError,
    NoValidAddressError,
    ConflictError,
)
from homedelivery.core.logging import get_logger
from homedelivery.database import atomic
from homedelivery.models import (
    Address,
    Publication,
    Subscription,
    SubscriptionChangeRequest,
    SubscriptionPause,
    CustomerActivity,
    area_publications,
)
from homedelivery.models.enums import (
    SubscriptionStatus,
    ChangeRequestType,
    ChangeRequestStatus,
    CustomerActivityType,
)
from homedelivery.schemas.identity import Actor, CustomerActor, ManagerActor
from homedelivery.schemas.subscription import (
    ChangeRequestCreate,
    NewSubscriptionRequest,
    UpdateSubscriptionRequest,
    CancelSubscriptionRequest,
    SubscriptionPauseCreate,
)
from homedelivery.utils.time import get_utc_now

logger = get_logger(__name__)


# Allowed subscription status transitions; Cancelled and Suspended are terminal
SUBSCRIPTION_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.ACTIVE: frozenset({
        SubscriptionStatus.PAUSED,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.SUSPENDED,
    }),
    SubscriptionStatus.PAUSED: frozenset({
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.SUSPENDED,
    }),
    SubscriptionStatus.CANCELLED: frozenset(),
    SubscriptionStatus.SUSPENDED: frozenset(),
}


class SubscriptionService:
    # --- State machine ---

    @staticmethod
    def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
        return target in SUBSCRIPTION_TRANSITIONS.get(current, frozenset())

    @staticmethod
    def transition(subscription: Subscription, target: SubscriptionStatus) -> None:
        """Move a subscription to a new status or raise ConflictError"""
        current = SubscriptionStatus(subscription.status)
        if not SubscriptionService.can_transition(current, target):
            raise ConflictError(
                f"Subscription cannot move from {current.value} to {target.value}"
            )
        subscription.status = target

    # --- Lookups ---

    @staticmethod
    async def get_subscription(db: AsyncSession, actor: Actor, subscription_id: UUID) -> Subscription:
        subscription = await db.get(Subscription, subscription_id)
        if not subscription:
            raise NotFoundError("Subscription not found")
        AreaGuard.require_subscription(actor, subscription)
        return subscription

    @staticmethod
    async def _get_customer_address(db: AsyncSession, customer: CustomerActor, address_id: UUID) -> Address:
        address = await db.get(Address, address_id)
        if not address or address.user_id != customer.user_id:
            raise NotFoundError("Address not found")
        if not address.is_active:
            raise ValidationFailedError("Address is inactive")
        if address.area_id is None:
            raise ValidationFailedError("Address is not assigned to an area")
        return address

    @staticmethod
    async def _has_pending_request(db: AsyncSession, subscription_id: UUID) -> bool:
        result = await db.execute(
            select(SubscriptionChangeRequest.id).where(
                SubscriptionChangeRequest.subscription_id == subscription_id,
                SubscriptionChangeRequest.status == ChangeRequestStatus.PENDING,
            )
        )
        return result.first() is not None

    @staticmethod
    async def _publication_area_ids(db: AsyncSession, publication_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(area_publications.c.area_id)
            .where(area_publications.c.publication_id == publication_id)
            .order_by(area_publications.c.area_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def resolve_delivery_address(db: AsyncSession, user_id: UUID, area_id: UUID) -> Address:
        """
        Address used when a New subscription is approved without one:
        the customer's default address if it is active and in the area,
        otherwise the first active address of the customer in the area.
        """
        result = await db.execute(
            select(Address)
            .where(
                Address.user_id == user_id,
                Address.area_id == area_id,
                Address.is_active.is_(True),
            )
            .order_by(Address.is_default.desc(), Address.created_at)
        )
        address = result.scalars().first()
        if not address:
            raise NoValidAddressError()
        return address

    # --- Customer operations ---

    @staticmethod
    async def submit_request(
        db: AsyncSession,
        customer: Actor,
        data: ChangeRequestCreate,
    ) -> SubscriptionChangeRequest:
        """
        Create a Pending change request.

        A New request also materializes its subscription in the Pending
        holding state, tied 1:1 to the request, in the same transaction.
        """
        customer = AreaGuard.require_customer(customer)
        if isinstance(data, NewSubscriptionRequest):
            return await SubscriptionService._submit_new(db, customer, data)
        if isinstance(data, UpdateSubscriptionRequest):
            return await SubscriptionService._submit_update(db, customer, data)
        if isinstance(data, CancelSubscriptionRequest):
            return await SubscriptionService._submit_cancel(db, customer, data)
        raise ValidationFailedError("Unknown change request type")

    @staticmethod
    def _effective_date(requested, now):
        return requested or now + timedelta(days=settings.CHANGE_REQUEST_LEAD_DAYS)

    @staticmethod
    async def _submit_new(
        db: AsyncSession,
        customer: CustomerActor,
        data: NewSubscriptionRequest,
    ) -> SubscriptionChangeRequest:
        if data.quantity <= 0:
            raise ValidationFailedError("Quantity must be positive")
        publication = await db.get(Publication, data.publication_id)
        if not publication or not publication.is_active:
            raise NotFoundError("Publication not found")

        address = None
        if data.address_id:
            address = await SubscriptionService._get_customer_address(db, customer, data.address_id)
            area_id = address.area_id
        else:
            candidates = [
                area_id
                for area_id in await SubscriptionService._publication_area_ids(db, publication.id)
                if area_id in customer.area_ids
            ]
            if not candidates:
                raise ValidationFailedError("Publication is not available in any of your areas")
            area_id = candidates[0]

        now = get_utc_now()
        effective_date = SubscriptionService._effective_date(data.effective_date, now)

        async with atomic(db):
            subscription = Subscription(
                user_id=customer.user_id,
                publication_id=publication.id,
                address_id=address.id if address else None,
                area_id=area_id,
                quantity=data.quantity,
                status=SubscriptionStatus.PENDING,
                placement=data.placement or "Door",
                additional_instructions=(
                    data.additional_instructions
                    or (address.delivery_instructions if address else None)
                ),
            )
            db.add(subscription)
            await db.flush()

            request = SubscriptionChangeRequest(
                user_id=customer.user_id,
                request_type=ChangeRequestType.NEW,
                subscription_id=subscription.id,
                publication_id=publication.id,
                new_quantity=data.quantity,
                new_address_id=data.address_id,
                placement=data.placement,
                additional_instructions=data.additional_instructions,
                status=ChangeRequestStatus.PENDING,
                request_date=now,
                effective_date=effective_date,
            )
            db.add(request)
            db.add(CustomerActivity(
                user_id=customer.user_id,
                activity_type=CustomerActivityType.NEW_SUBSCRIPTION,
                details=f"Requested {data.quantity} x {publication.name}",
            ))

        await db.refresh(request)
        logger.info(
            "New subscription requested",
            extra={"request_id": str(request.id), "subscription_id": str(subscription.id)},
        )
        return request

    @staticmethod
    async def _submit_update(
        db: AsyncSession,
        customer: CustomerActor,
        data: UpdateSubscriptionRequest,
    ) -> SubscriptionChangeRequest:
        subscription = await SubscriptionService.get_subscription(db, customer, data.subscription_id)
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise ConflictError("Only active subscriptions can be updated")
        if data.address_id:
            address = await SubscriptionService._get_customer_address(db, customer, data.address_id)
            if address.area_id != subscription.area_id:
                raise ValidationFailedError("New address must be in the subscription's area")
        if await SubscriptionService._has_pending_request(db, subscription.id):
            raise ConflictError("A change request for this subscription is already pending")

        now = get_utc_now()
        async with atomic(db):
            request = SubscriptionChangeRequest(
                user_id=customer.user_id,
                request_type=ChangeRequestType.UPDATE,
                subscription_id=subscription.id,
                publication_id=subscription.publication_id,
                new_quantity=data.quantity,
                new_address_id=data.address_id,
                placement=data.placement,
                additional_instructions=data.additional_instructions,
                status=ChangeRequestStatus.PENDING,
                request_date=now,
                effective_date=SubscriptionService._effective_date(data.effective_date, now),
            )
            db.add(request)
            db.add(CustomerActivity(
                user_id=customer.user_id,
                activity_type=CustomerActivityType.MODIFICATION,
                details=f"Requested changes to subscription {subscription.id}",
            ))

        await db.refresh(request)
        return request

    @staticmethod
    async def _submit_cancel(
        db: AsyncSession,
        customer: CustomerActor,
        data: CancelSubscriptionRequest,
    ) -> SubscriptionChangeRequest:
        subscription = await SubscriptionService.get_subscription(db, customer, data.subscription_id)
        if not SubscriptionService.can_transition(subscription.status, SubscriptionStatus.CANCELLED):
            raise ConflictError(f"A {subscription.status.value} subscription cannot be cancelled")
        if await SubscriptionService._has_pending_request(db, subscription.id):
            raise ConflictError("A change request for this subscription is already pending")

        now = get_utc_now()
        async with atomic(db):
            request = SubscriptionChangeRequest(
                user_id=customer.user_id,
                request_type=ChangeRequestType.CANCEL,
                subscription_id=subscription.id,
                publication_id=subscription.publication_id,
                status=ChangeRequestStatus.PENDING,
                request_date=now,
                effective_date=SubscriptionService._effective_date(data.effective_date, now),
                comments=data.reason,
            )
            db.add(request)
            db.add(CustomerActivity(
                user_id=customer.user_id,
                activity_type=CustomerActivityType.CANCELLATION,
                details=f"Requested cancellation of subscription {subscription.id}",
            ))

        await db.refresh(request)
        return request

    # --- Manager decision ---

    @staticmethod
    async def _resolve_request_area(
        db: AsyncSession,
        manager: ManagerActor,
        request: SubscriptionChangeRequest,
        subscription: Optional[Subscription],
    ) -> UUID:
        """First area along subscription -> new address -> publication that the manager controls"""
        if request.request_type != ChangeRequestType.NEW:
            AreaGuard.require_area(manager, subscription.area_id, "Not authorized for this subscription's area")
            return subscription.area_id

        candidates: List[Optional[UUID]] = []
        if subscription:
            candidates.append(subscription.area_id)
        if request.new_address_id:
            address = await db.get(Address, request.new_address_id)
            if not address:
                raise NotFoundError("Address not found")
            candidates.append(address.area_id)
        if request.publication_id:
            candidates.extend(await SubscriptionService._publication_area_ids(db, request.publication_id))

        for area_id in candidates:
            if AreaGuard.can_access_area(manager, area_id):
                return area_id
        raise AreaGuard.deny(manager, "Not authorized for any area of this request")

    @staticmethod
    async def decide(
        db: AsyncSession,
        manager: Actor,
        request_id: UUID,
        decision: ChangeRequestStatus,
        comments: Optional[str] = None,
    ) -> SubscriptionChangeRequest:
        """
        Approve or reject a Pending change request.

        The request's terminal status and the subscription mutation commit
        together or not at all.

        Raises:
            NotFoundError: request or a referenced record is missing
            ForbiddenError: the manager controls none of the request's areas
            ConflictError: the request was already decided, or the
                subscription no longer allows the change
            NoValidAddressError: approving a New request without a usable address
        """
        manager = AreaGuard.require_manager(manager)
        try:
            decision = ChangeRequestStatus(decision)
        except ValueError:
            raise ValidationFailedError(f"Unknown decision: {decision}")
        if decision not in (ChangeRequestStatus.APPROVED, ChangeRequestStatus.REJECTED):
            raise ValidationFailedError("Decision must be Approved or Rejected")

        request = await db.get(SubscriptionChangeRequest, request_id)
        if not request:
            raise NotFoundError("Change request not found")

        subscription = None
        if request.subscription_id:
            subscription = await db.get(Subscription, request.subscription_id)
        if subscription is None and request.request_type != ChangeRequestType.NEW:
            raise NotFoundError("Subscription not found")

        area_id = await SubscriptionService._resolve_request_area(db, manager, request, subscription)

        if request.status != ChangeRequestStatus.PENDING:
            raise ConflictError("Change request has already been processed")

        address = None
        if decision == ChangeRequestStatus.APPROVED:
            if request.request_type == ChangeRequestType.NEW:
                if subscription is None:
                    raise NotFoundError("Subscription not found")
                if request.new_address_id:
                    address = await db.get(Address, request.new_address_id)
                    if not address or not address.is_active or address.area_id != area_id:
                        raise NoValidAddressError()
                elif subscription.address_id:
                    address = await db.get(Address, subscription.address_id)
                if address is None:
                    address = await SubscriptionService.resolve_delivery_address(db, request.user_id, area_id)
            elif request.request_type == ChangeRequestType.UPDATE and request.new_address_id:
                address = await db.get(Address, request.new_address_id)
                if not address or not address.is_active:
                    raise NotFoundError("Address not found")
                if address.area_id != subscription.area_id:
                    raise ValidationFailedError("New address must be in the subscription's area")

        async with atomic(db):
            if decision == ChangeRequestStatus.APPROVED:
                SubscriptionService._apply(request, subscription, address, area_id)
            request.status = decision
            request.processed_by = manager.user_id
            request.processed_date = get_utc_now()
            if comments is not None:
                request.comments = comments

        logger.info(
            "Change request decided",
            extra={
                "request_id": str(request.id),
                "request_type": request.request_type.value,
                "decision": decision.value,
                "manager_id": str(manager.user_id),
            },
        )
        return request

    @staticmethod
    def _apply(
        request: SubscriptionChangeRequest,
        subscription: Subscription,
        address: Optional[Address],
        area_id: UUID,
    ) -> None:
        if request.request_type == ChangeRequestType.NEW:
            SubscriptionService.transition(subscription, SubscriptionStatus.ACTIVE)
            subscription.address_id = address.id
            subscription.area_id = area_id
            subscription.start_date = request.effective_date.date()
            if not subscription.additional_instructions and address.delivery_instructions:
                subscription.additional_instructions = address.delivery_instructions
            return

        if request.request_type == ChangeRequestType.UPDATE:
            if subscription.status != SubscriptionStatus.ACTIVE:
                raise ConflictError("Only active subscriptions can be updated")
            if request.new_quantity is not None:
                subscription.quantity = request.new_quantity
            if address is not None:
                subscription.address_id = address.id
            if request.placement is not None:
                subscription.placement = request.placement
            if request.additional_instructions is not None:
                subscription.additional_instructions = request.additional_instructions
            return

        SubscriptionService.transition(subscription, SubscriptionStatus.CANCELLED)
        subscription.end_date = request.effective_date.date()

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        manager: Actor,
        status: Optional[ChangeRequestStatus] = None,
    ) -> List[SubscriptionChangeRequest]:
        """
        Requests whose subscription lies in the manager's areas. New requests
        also match through a publication carried by one of those areas.
        """
        manager = AreaGuard.require_manager(manager)
        if not manager.area_ids:
            logger.warning("Manager controls no areas", extra={"user_id": str(manager.user_id)})
            return []

        subscription_ids = (await db.execute(
            select(Subscription.id).where(Subscription.area_id.in_(manager.area_ids))
        )).scalars().all()
        publication_ids = (await db.execute(
            select(area_publications.c.publication_id)
            .where(area_publications.c.area_id.in_(manager.area_ids))
            .distinct()
        )).scalars().all()
        if not subscription_ids and not publication_ids:
            return []

        query = select(SubscriptionChangeRequest).where(
            or_(
                SubscriptionChangeRequest.subscription_id.in_(subscription_ids),
                and_(
                    SubscriptionChangeRequest.request_type == ChangeRequestType.NEW,
                    SubscriptionChangeRequest.publication_id.in_(publication_ids),
                ),
            )
        )
        if status is not None:
            query = query.where(SubscriptionChangeRequest.status == status)
        result = await db.execute(query.order_by(SubscriptionChangeRequest.request_date.desc()))
        return list(result.scalars().all())

    # --- Pause / resume / suspend ---

    @staticmethod
    async def request_pause(
        db: AsyncSession,
        customer: Actor,
        subscription_id: UUID,
        data: SubscriptionPauseCreate,
    ) -> SubscriptionPause:
        customer = AreaGuard.require_customer(customer)
        subscription = await SubscriptionService.get_subscription(db, customer, subscription_id)

        async with atomic(db):
            SubscriptionService.transition(subscription, SubscriptionStatus.PAUSED)
            pause = SubscriptionPause(
                subscription_id=subscription.id,
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason,
            )
            db.add(pause)
            db.add(CustomerActivity(
                user_id=customer.user_id,
                activity_type=CustomerActivityType.PAUSE_REQUEST,
                details=f"Paused subscription {subscription.id} from {data.start_date} to {data.end_date}",
            ))

        await db.refresh(pause)
        return pause

    @staticmethod
    async def resume_subscription(db: AsyncSession, customer: Actor, subscription_id: UUID) -> Subscription:
        customer = AreaGuard.require_customer(customer)
        subscription = await SubscriptionService.get_subscription(db, customer, subscription_id)
        async with atomic(db):
            SubscriptionService.transition(subscription, SubscriptionStatus.ACTIVE)
        return subscription

    @staticmethod
    async def suspend_subscription(
        db: AsyncSession,
        manager: Actor,
        subscription_id: UUID,
        reason: Optional[str] = None,
    ) -> Subscription:
        manager = AreaGuard.require_manager(manager)
        subscription = await db.get(Subscription, subscription_id)
        if not subscription:
            raise NotFoundError("Subscription not found")
        AreaGuard.require_subscription(manager, subscription)

        async with atomic(db):
            SubscriptionService.transition(subscription, SubscriptionStatus.SUSPENDED)
            subscription.end_date = get_utc_now().date()

        logger.info(
            "Subscription suspended",
            extra={"subscription_id": str(subscription.id), "reason": reason},
        )
        return subscription
