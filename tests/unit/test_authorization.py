"""Unit tests for AreaGuard."""

import pytest
from types import SimpleNamespace
from uuid import uuid4

from homedelivery.core.authorization import AreaGuard
from homedelivery.core.exceptions import ForbiddenError
from homedelivery.schemas.identity import ManagerActor, DelivererActor, CustomerActor


def _manager(*areas):
    return ManagerActor(user_id=uuid4(), area_ids=frozenset(areas))


def test_manager_can_access_only_own_areas():
    north, south = uuid4(), uuid4()
    manager = _manager(north)
    assert AreaGuard.can_access_area(manager, north) is True
    assert AreaGuard.can_access_area(manager, south) is False


def test_missing_area_is_denied():
    manager = _manager(uuid4())
    assert AreaGuard.can_access_area(manager, None) is False


def test_actor_without_areas_is_denied_everywhere():
    manager = _manager()
    assert AreaGuard.can_access_area(manager, uuid4()) is False
    with pytest.raises(ForbiddenError):
        AreaGuard.require_area(manager, uuid4())


def test_customer_restricted_to_own_records():
    area = uuid4()
    customer = CustomerActor(user_id=uuid4(), area_ids=frozenset({area}))
    own = SimpleNamespace(user_id=customer.user_id, area_id=area)
    other = SimpleNamespace(user_id=uuid4(), area_id=area)

    assert AreaGuard.can_access_subscription(customer, own) is True
    assert AreaGuard.can_access_subscription(customer, other) is False
    with pytest.raises(ForbiddenError):
        AreaGuard.require_bill(customer, other)


def test_manager_accesses_records_by_area():
    north, south = uuid4(), uuid4()
    manager = _manager(north)
    in_area = SimpleNamespace(user_id=uuid4(), area_id=north)
    elsewhere = SimpleNamespace(user_id=uuid4(), area_id=south)

    assert AreaGuard.can_access_bill(manager, in_area) is True
    assert AreaGuard.can_access_bill(manager, elsewhere) is False


def test_deliverer_personnel_access():
    area = uuid4()
    deliverer = DelivererActor(user_id=uuid4(), personnel_id=uuid4(), area_ids=frozenset({area}))
    own = SimpleNamespace(id=deliverer.personnel_id, area_ids=frozenset({area}))
    colleague = SimpleNamespace(id=uuid4(), area_ids=frozenset({area}))

    assert AreaGuard.can_access_personnel(deliverer, own) is True
    assert AreaGuard.can_access_personnel(deliverer, colleague) is False


def test_manager_personnel_access_by_shared_area():
    north, south = uuid4(), uuid4()
    manager = _manager(north)
    shared = SimpleNamespace(id=uuid4(), area_ids=frozenset({north, south}))
    foreign = SimpleNamespace(id=uuid4(), area_ids=frozenset({south}))

    assert AreaGuard.can_access_personnel(manager, shared) is True
    with pytest.raises(ForbiddenError):
        AreaGuard.require_personnel(manager, foreign)


def test_scope_areas_intersects_request():
    north, south, east = uuid4(), uuid4(), uuid4()
    manager = _manager(north, south)

    assert AreaGuard.scope_areas(manager) == frozenset({north, south})
    assert AreaGuard.scope_areas(manager, [south, east]) == frozenset({south})
    assert AreaGuard.scope_areas(manager, [east]) == frozenset()


def test_role_requirements_narrow_actor():
    manager = _manager()
    customer = CustomerActor(user_id=uuid4())

    assert AreaGuard.require_manager(manager) is manager
    assert AreaGuard.require_customer(customer) is customer
    with pytest.raises(ForbiddenError):
        AreaGuard.require_manager(customer)
    with pytest.raises(ForbiddenError):
        AreaGuard.require_deliverer(manager)
