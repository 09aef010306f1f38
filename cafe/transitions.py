"""
Order status state machine.

    pending -> preparing -> ready -> completed
    pending -> cancelled

completed and cancelled are terminal. Payment confirmation (pending -> confirmed)
is only accepted once the order is completed.
"""
from cafe import exceptions
from cafe.models import OrderStatus, PaymentStatus, UserRole

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# (from, to) -> roles allowed to perform it
ALLOWED_TRANSITIONS = {
    (OrderStatus.PENDING, OrderStatus.PREPARING): frozenset({UserRole.ADMIN}),
    (OrderStatus.PREPARING, OrderStatus.READY): frozenset({UserRole.ADMIN}),
    (OrderStatus.READY, OrderStatus.COMPLETED): frozenset({UserRole.ADMIN}),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): frozenset({UserRole.ADMIN, UserRole.CUSTOMER}),
}


def is_terminal(status):
    return status in TERMINAL_STATUSES


def next_statuses(status):
    """Statuses reachable from `status` in one step, in lifecycle order."""
    return [to for (frm, to) in ALLOWED_TRANSITIONS if frm == status]


def _check_actor(actor):
    if actor is None:
        raise exceptions.Forbidden('Authentication required')


def _check_ownership(order, actor):
    if actor.is_customer and order.user_id != actor.id:
        raise exceptions.Forbidden('You can only change your own orders')


def validate_transition(order, new_status, actor, current=None):
    """
    Raise unless `actor` may move `order` from `current` (default order.status) to `new_status`.

    Customers are checked for ownership first; a customer asking to cancel an
    order that is not pending in the store is Forbidden, whatever status the
    caller claims to have seen. Pairs outside the table are InvalidTransition.
    """
    _check_actor(actor)
    current = current or order.status
    if new_status not in OrderStatus.values:
        raise exceptions.ValidationError(f'Unknown status: {new_status}')
    _check_ownership(order, actor)
    if actor.is_customer and new_status == OrderStatus.CANCELLED and (
        order.status != OrderStatus.PENDING or current != OrderStatus.PENDING
    ):
        raise exceptions.Forbidden('Orders can only be cancelled while pending')
    if is_terminal(current):
        raise exceptions.InvalidTransition(
            current, new_status, message=f'Order is already {current}; no further changes are allowed',
        )
    roles = ALLOWED_TRANSITIONS.get((current, new_status))
    if roles is None:
        allowed = ', '.join(next_statuses(current))
        raise exceptions.InvalidTransition(
            current, new_status,
            message=f'Invalid transition from {current} to {new_status} (allowed: {allowed})',
        )
    if actor.role not in roles:
        raise exceptions.Forbidden(f'Only an admin can move an order to {new_status}')


def validate_payment_confirmation(order, actor):
    """Raise unless `actor` may confirm payment for `order`."""
    _check_actor(actor)
    if not actor.is_admin:
        raise exceptions.Forbidden('Only an admin can confirm payment')
    if order.status != OrderStatus.COMPLETED:
        raise exceptions.InvalidTransition(
            order.status, 'payment_confirmed',
            message=f'Payment can only be confirmed for completed orders (order is {order.status})',
        )
    if order.payment_status != PaymentStatus.PENDING:
        raise exceptions.InvalidTransition(
            f'payment_{order.payment_status}', 'payment_confirmed',
            message='Payment is already confirmed',
        )
