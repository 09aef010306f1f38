import itertools

import pytest

from cafe import exceptions
from cafe.models import Order, OrderStatus, PaymentStatus, UserRole
from cafe.permissions import Actor
from cafe.transitions import (
    ALLOWED_TRANSITIONS,
    is_terminal,
    next_statuses,
    validate_payment_confirmation,
    validate_transition,
)

ADMIN = Actor(id=1, role=UserRole.ADMIN)
OWNER = Actor(id=2, role=UserRole.CUSTOMER)
STRANGER = Actor(id=3, role=UserRole.CUSTOMER)


def _order(status, user_id=OWNER.id, payment_status=PaymentStatus.PENDING):
    return Order(user_id=user_id, status=status, payment_status=payment_status)


@pytest.mark.parametrize('frm,to', [
    (OrderStatus.PENDING, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.READY, OrderStatus.COMPLETED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
])
def test_admin_forward_transitions_allowed(frm, to):
    validate_transition(_order(frm), to, ADMIN)


def test_pairs_outside_table_are_invalid_for_admin():
    for frm, to in itertools.product(OrderStatus.values, repeat=2):
        if (frm, to) in ALLOWED_TRANSITIONS:
            continue
        with pytest.raises(exceptions.InvalidTransition) as exc:
            validate_transition(_order(frm), to, ADMIN)
        assert exc.value.current == frm
        assert exc.value.requested == to


@pytest.mark.parametrize('terminal', [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_terminal_states_have_no_exit(terminal):
    assert is_terminal(terminal)
    assert next_statuses(terminal) == []
    for to in OrderStatus.values:
        with pytest.raises(exceptions.InvalidTransition):
            validate_transition(_order(terminal), to, ADMIN)


def test_skipping_states_is_rejected():
    with pytest.raises(exceptions.InvalidTransition):
        validate_transition(_order(OrderStatus.PENDING), OrderStatus.COMPLETED, ADMIN)
    with pytest.raises(exceptions.InvalidTransition):
        validate_transition(_order(OrderStatus.PREPARING), OrderStatus.PENDING, ADMIN)


def test_owner_may_cancel_pending_order():
    validate_transition(_order(OrderStatus.PENDING), OrderStatus.CANCELLED, OWNER)


def test_customer_cannot_touch_someone_elses_order():
    with pytest.raises(exceptions.Forbidden):
        validate_transition(_order(OrderStatus.PENDING), OrderStatus.CANCELLED, STRANGER)


def test_customer_cannot_advance_own_order():
    with pytest.raises(exceptions.Forbidden):
        validate_transition(_order(OrderStatus.PENDING), OrderStatus.PREPARING, OWNER)


def test_customer_cannot_cancel_non_pending_order():
    with pytest.raises(exceptions.Forbidden):
        validate_transition(_order(OrderStatus.PREPARING), OrderStatus.CANCELLED, OWNER)


def test_anonymous_actor_is_forbidden():
    with pytest.raises(exceptions.Forbidden):
        validate_transition(_order(OrderStatus.PENDING), OrderStatus.CANCELLED, None)


def test_unknown_status_is_validation_error():
    with pytest.raises(exceptions.ValidationError):
        validate_transition(_order(OrderStatus.PENDING), 'served', ADMIN)


def test_explicit_current_overrides_stored_status():
    order = _order(OrderStatus.PREPARING)
    validate_transition(order, OrderStatus.PREPARING, ADMIN, current=OrderStatus.PENDING)


def test_next_statuses_follow_lifecycle():
    assert next_statuses(OrderStatus.PENDING) == [OrderStatus.PREPARING, OrderStatus.CANCELLED]
    assert next_statuses(OrderStatus.READY) == [OrderStatus.COMPLETED]


class TestPaymentConfirmation:

    def test_admin_confirms_completed_order(self):
        validate_payment_confirmation(_order(OrderStatus.COMPLETED), ADMIN)

    def test_requires_completed_status(self):
        with pytest.raises(exceptions.InvalidTransition):
            validate_payment_confirmation(_order(OrderStatus.READY), ADMIN)

    def test_rejects_second_confirmation(self):
        order = _order(OrderStatus.COMPLETED, payment_status=PaymentStatus.CONFIRMED)
        with pytest.raises(exceptions.InvalidTransition):
            validate_payment_confirmation(order, ADMIN)

    def test_customer_cannot_confirm(self):
        with pytest.raises(exceptions.Forbidden):
            validate_payment_confirmation(_order(OrderStatus.COMPLETED), OWNER)


def test_invalid_transition_names_the_allowed_moves():
    with pytest.raises(exceptions.InvalidTransition) as exc:
        validate_transition(_order(OrderStatus.PENDING), OrderStatus.READY, ADMIN)
    assert 'allowed: preparing, cancelled' in exc.value.message


def test_terminal_message():
    with pytest.raises(exceptions.InvalidTransition) as exc:
        validate_transition(_order(OrderStatus.COMPLETED), OrderStatus.CANCELLED, ADMIN)
    assert 'already' in exc.value.message


def test_owner_cancel_checks_stored_status():
    order = _order(OrderStatus.PREPARING)
    with pytest.raises(exceptions.Forbidden):
        validate_transition(order, OrderStatus.CANCELLED, OWNER, current=OrderStatus.PENDING)
