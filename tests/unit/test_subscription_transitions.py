"""Unit tests for the subscription status state machine."""

import pytest

from homedelivery.core.exceptions import ConflictError
from homedelivery.models.subscription import Subscription
from homedelivery.models.enums import SubscriptionStatus
from homedelivery.services.subscription_service import SubscriptionService

S = SubscriptionStatus


@pytest.mark.parametrize("current,target", [
    (S.PENDING, S.ACTIVE),
    (S.PENDING, S.CANCELLED),
    (S.ACTIVE, S.PAUSED),
    (S.PAUSED, S.ACTIVE),
    (S.ACTIVE, S.CANCELLED),
    (S.PAUSED, S.CANCELLED),
    (S.ACTIVE, S.SUSPENDED),
    (S.PAUSED, S.SUSPENDED),
])
def test_allowed_transitions(current, target):
    subscription = Subscription(status=current)
    SubscriptionService.transition(subscription, target)
    assert subscription.status == target


@pytest.mark.parametrize("current,target", [
    (S.CANCELLED, S.ACTIVE),
    (S.SUSPENDED, S.ACTIVE),
    (S.CANCELLED, S.PAUSED),
    (S.PENDING, S.PAUSED),
    (S.ACTIVE, S.PENDING),
    (S.ACTIVE, S.ACTIVE),
])
def test_rejected_transitions(current, target):
    subscription = Subscription(status=current)
    with pytest.raises(ConflictError):
        SubscriptionService.transition(subscription, target)
    assert subscription.status == current


def test_terminal_states_have_no_exits():
    for terminal in (S.CANCELLED, S.SUSPENDED):
        assert not any(SubscriptionService.can_transition(terminal, target) for target in S)
