"""
Notification fan-out: turn an accepted order transition into a message and an
addressee, persist a Notification and attempt push delivery.

Everything here is best-effort. Failures are logged and never propagate to the
caller, so a status change succeeds even when its notification does not.
"""
import logging
from collections import namedtuple

from django.db import transaction
from django.db.models import Q

from cafe import exceptions
from cafe.models import Notification, NotificationType, OrderStatus, User, UserRole

logger = logging.getLogger(__name__)

Derived = namedtuple('Derived', ['type', 'title', 'message'])

TRANSITION_MESSAGES = {
    (OrderStatus.PENDING, OrderStatus.PREPARING): (
        NotificationType.ORDER_PREPARING, 'Preparing', 'Your order is being prepared',
    ),
    (OrderStatus.PREPARING, OrderStatus.READY): (
        NotificationType.ORDER_READY, 'Ready', 'Your order is ready. Please pick it up!',
    ),
    (OrderStatus.READY, OrderStatus.COMPLETED): (
        NotificationType.ORDER_COMPLETED, 'Picked up', 'Your order has been picked up. Thank you!',
    ),
}


def menu_summary(order):
    """'Americano x2, Latte x1' for the order's items; '' when it has none."""
    parts = []
    for item in order.items.select_related('menu').all():
        parts.append(f'{item.menu.name} x{item.quantity}')
    return ', '.join(parts)


def _with_summary(text, order):
    summary = menu_summary(order)
    return f'{text} - {summary}' if summary else text


def derive_transition(order, prev_status, new_status, reason=None):
    """Return Derived for a status transition, or None if it produces no notification."""
    if new_status == OrderStatus.CANCELLED:
        text = 'Your order has been cancelled'
        if reason:
            text = f'{text}. Reason: {reason}'
        return Derived(NotificationType.ORDER_CANCELLED, 'Order cancelled', _with_summary(text, order))
    entry = TRANSITION_MESSAGES.get((prev_status, new_status))
    if entry is None:
        return None
    ntype, title, text = entry
    return Derived(ntype, title, _with_summary(text, order))


def derive_payment_confirmed(order):
    return Derived(
        NotificationType.PAYMENT_CONFIRMED,
        'Payment confirmed',
        _with_summary('Your payment has been confirmed', order),
    )


def derive_new_order(order):
    return Derived(
        NotificationType.NEW_ORDER,
        'New order',
        _with_summary(f'New order from {order.display_name}', order),
    )


def admin_users():
    return User.objects.filter(is_active=True).filter(
        Q(role=UserRole.ADMIN) | Q(is_superuser=True)
    )


def _deliver(users, order, derived):
    """Persist one Notification per user, then push. Returns the notifications created."""
    from cafe.fcm import send_push

    created = []
    for user in users:
        try:
            with transaction.atomic():
                n = Notification.objects.create(
                    user=user,
                    order=order,
                    type=derived.type,
                    message=derived.message,
                )
        except Exception as e:
            failure = exceptions.SideEffectFailure(
                f'Notification {derived.type} for order {order.pk} to user {user.pk} failed: {e}'
            )
            logger.exception('%s', failure)
            continue
        created.append(n)
        try:
            send_push(
                user,
                derived.title,
                derived.message,
                tag=f'{derived.type}-{order.pk}',
                order_id=order.pk,
            )
        except Exception:
            logger.exception('Push for notification %s failed', n.pk)
    return created


def _customer_addressee(order):
    if not order.user_id:
        return []
    return [order.user]


def notify_order_transition(order, prev_status, new_status, reason=None):
    """Notify the order's customer of a status change. Skipped for anonymous orders."""
    try:
        derived = derive_transition(order, prev_status, new_status, reason=reason)
        if derived is None:
            return []
        return _deliver(_customer_addressee(order), order, derived)
    except Exception:
        logger.exception('Fan-out for order %s (%s -> %s) failed', order.pk, prev_status, new_status)
        return []


def notify_payment_confirmed(order):
    try:
        return _deliver(_customer_addressee(order), order, derive_payment_confirmed(order))
    except Exception:
        logger.exception('Payment fan-out for order %s failed', order.pk)
        return []


def notify_new_order(order):
    """Notify every admin of a newly placed order."""
    try:
        return _deliver(list(admin_users()), order, derive_new_order(order))
    except Exception:
        logger.exception('New order fan-out for order %s failed', order.pk)
        return []
