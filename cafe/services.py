"""
Order lifecycle engine: order store operations, status and payment
transitions, hard delete, the notification inbox and order subscriptions.

Every mutation takes an explicit Actor (see cafe.permissions). Status and
payment changes are conditional UPDATEs on the status the caller acted on, so
of two concurrent callers only one wins and the other gets StaleState.
Notification fan-out runs after the mutation and never fails it.
"""
import logging
import uuid

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from cafe import exceptions
from cafe.constants import REASON_OTHER, resolve_cancellation_reason
from cafe.models import (
    Menu,
    Notification,
    NotificationStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from cafe.order_notify import notify_new_order, notify_order_transition, notify_payment_confirmed
from cafe.realtime.bus import (
    DELETE,
    INSERT,
    NOTIFICATIONS,
    ORDERS,
    UPDATE,
    ChangeEvent,
    OrderFeed,
    bus,
)
from cafe.transitions import validate_payment_confirmation, validate_transition
from cafe.utils import clean_text, retry_read

logger = logging.getLogger(__name__)

NOTIFICATION_LIST_MAX = 100


def _parse_uuid(value, what='Order'):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise exceptions.NotFound(f'{what} not found')


def _positive_int(value, field, allow_zero=False):
    if isinstance(value, bool):
        raise exceptions.ValidationError(f'{field} must be an integer', field=field)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise exceptions.ValidationError(f'{field} must be an integer', field=field)
    if value < 0 or (value == 0 and not allow_zero):
        raise exceptions.ValidationError(f'{field} must be positive', field=field)
    return value


def _order_queryset():
    return Order.objects.select_related('user').prefetch_related('items__menu')


def _load_order(order_id):
    """Fetch an order with items and menus, without retry. Raises NotFound."""
    pk = _parse_uuid(order_id)
    try:
        return _order_queryset().get(pk=pk)
    except Order.DoesNotExist:
        raise exceptions.NotFound('Order not found')


# --- Order store ---

def _build_items(items):
    """Validate cart lines and return (unsaved OrderItems, total)."""
    if not items or not isinstance(items, (list, tuple)):
        raise exceptions.ValidationError('Order must contain at least one item', field='items')
    menu_ids = []
    for raw in items:
        if not isinstance(raw, dict):
            raise exceptions.ValidationError('Each item must be an object', field='items')
        try:
            menu_ids.append(uuid.UUID(str(raw.get('menu_id'))))
        except (TypeError, ValueError):
            raise exceptions.ValidationError('Invalid menu_id', field='menu_id')
    menus = Menu.objects.in_bulk(menu_ids)

    built = []
    total = 0
    for raw, menu_id in zip(items, menu_ids):
        menu = menus.get(menu_id)
        if menu is None:
            raise exceptions.ValidationError(f'Menu {menu_id} does not exist', field='menu_id')
        if not menu.is_available:
            raise exceptions.ValidationError(f'{menu.name} is not available', field='menu_id')
        quantity = _positive_int(raw.get('quantity'), 'quantity')
        unit_price = raw.get('unit_price')
        # price is snapshotted from the cart; fall back to the current menu price
        unit_price = menu.price if unit_price is None else _positive_int(unit_price, 'unit_price', allow_zero=True)
        total_price = quantity * unit_price
        if raw.get('total_price') is not None:
            given = _positive_int(raw.get('total_price'), 'total_price', allow_zero=True)
            if given != total_price:
                raise exceptions.ValidationError(
                    f'total_price {given} does not match quantity x unit_price ({total_price})',
                    field='total_price',
                )
        built.append(OrderItem(
            menu=menu,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            notes=clean_text(raw.get('notes'), 'notes'),
        ))
        total += total_price
    return built, total


def create_order(customer_name, payment_method, items, church_group=None, notes=None, actor=None):
    """
    Place an order. Order and items are written in one transaction; on commit
    the order is published on the bus and every admin is notified.
    `actor` is None for orders placed without an account.
    """
    customer_name = clean_text(customer_name, 'customer_name')
    church_group = clean_text(church_group, 'church_group')
    notes = clean_text(notes, 'notes')
    if not customer_name:
        raise exceptions.ValidationError('customer_name is required', field='customer_name')
    if payment_method not in PaymentMethod.values:
        raise exceptions.ValidationError(
            f'payment_method must be one of {", ".join(PaymentMethod.values)}',
            field='payment_method',
        )
    order_items, total = _build_items(items)

    with transaction.atomic():
        order = Order.objects.create(
            user_id=actor.id if actor else None,
            customer_name=customer_name,
            church_group=church_group,
            total_amount=total,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING,
            notes=notes,
        )
        for item in order_items:
            item.order = order
        OrderItem.objects.bulk_create(order_items)

    logger.info(
        'Order %s created by %s: %d item(s), total %d',
        order.pk, actor.id if actor else 'anonymous', len(order_items), total,
    )
    order = _load_order(order.pk)
    bus.publish_on_commit(ChangeEvent(ORDERS, INSERT, order.pk, user_id=order.user_id))
    notify_new_order(order)
    return order


@retry_read
def get_order(order_id, actor=None):
    """Order with items and menus. A customer actor may only read their own orders."""
    order = _load_order(order_id)
    if actor is not None and actor.is_customer and order.user_id != actor.id:
        raise exceptions.Forbidden('You can only view your own orders')
    return order


@retry_read
def list_orders(status=None, user_id=None, payment_status=None):
    """Orders newest first, optionally filtered."""
    qs = _order_queryset()
    if status:
        if status not in OrderStatus.values:
            raise exceptions.ValidationError(f'Unknown status: {status}', field='status')
        qs = qs.filter(status=status)
    if payment_status:
        if payment_status not in PaymentStatus.values:
            raise exceptions.ValidationError(
                f'Unknown payment_status: {payment_status}', field='payment_status'
            )
        qs = qs.filter(payment_status=payment_status)
    if user_id is not None:
        qs = qs.filter(user_id=user_id)
    return list(qs.order_by('-created_at'))


def _stale_or_missing(order_pk, expected):
    actual = Order.objects.filter(pk=order_pk).values_list('status', flat=True).first()
    if actual is None:
        return exceptions.NotFound('Order not found')
    return exceptions.StaleState(expected, actual)


def change_status(order_id, new_status, actor, expected_status=None, reason=None):
    """
    Move an order to `new_status`.

    `expected_status` is the status the caller saw; it defaults to the stored
    status. The UPDATE only applies while the row still has that status.
    """
    new_status = clean_text(new_status, 'status')
    expected_status = clean_text(expected_status, 'expected_status') or None
    reason = clean_text(reason, 'reason') or None
    order = _load_order(order_id)
    current = expected_status or order.status
    if current not in OrderStatus.values:
        raise exceptions.ValidationError(f'Unknown status: {current}', field='expected_status')
    validate_transition(order, new_status, actor, current=current)

    updates = {'status': new_status, 'updated_at': timezone.now()}
    if new_status == OrderStatus.CANCELLED:
        updates['cancellation_reason'] = reason or ''
    updated = Order.objects.filter(pk=order.pk, status=current).update(**updates)
    if not updated:
        raise _stale_or_missing(order.pk, current)

    logger.info('Order %s %s -> %s by %s %s', order.pk, current, new_status, actor.role, actor.id)
    order = _load_order(order.pk)
    notify_order_transition(order, current, new_status, reason=reason)
    bus.publish_on_commit(ChangeEvent(
        ORDERS, UPDATE, order.pk, user_id=order.user_id,
        changes={'status': new_status, 'previous_status': current},
    ))
    return order


def cancel_order(order_id, reason, actor, custom_reason=None):
    """Cancel a pending order. 'Other' requires custom_reason."""
    reason = clean_text(reason, 'reason')
    custom_reason = clean_text(custom_reason, 'custom_reason')
    if reason == REASON_OTHER and not custom_reason:
        raise exceptions.ValidationError('A custom reason is required for "Other"', field='custom_reason')
    resolved = resolve_cancellation_reason(reason, custom_reason)
    return change_status(order_id, OrderStatus.CANCELLED, actor, reason=resolved or None)


def confirm_payment(order_id, actor):
    """Mark a completed order's payment as confirmed."""
    order = _load_order(order_id)
    validate_payment_confirmation(order, actor)
    updated = Order.objects.filter(
        pk=order.pk,
        status=OrderStatus.COMPLETED,
        payment_status=PaymentStatus.PENDING,
    ).update(payment_status=PaymentStatus.CONFIRMED, updated_at=timezone.now())
    if not updated:
        row = Order.objects.filter(pk=order.pk).values('status', 'payment_status').first()
        if row is None:
            raise exceptions.NotFound('Order not found')
        raise exceptions.StaleState(
            f'{OrderStatus.COMPLETED}/payment_{PaymentStatus.PENDING}',
            f'{row["status"]}/payment_{row["payment_status"]}',
        )

    logger.info('Order %s payment confirmed by admin %s', order.pk, actor.id)
    order = _load_order(order.pk)
    notify_payment_confirmed(order)
    bus.publish_on_commit(ChangeEvent(
        ORDERS, UPDATE, order.pk, user_id=order.user_id,
        changes={'payment_status': PaymentStatus.CONFIRMED},
    ))
    return order


def hard_delete_order(order_id, actor):
    """Delete an order with its items and notifications. Admin only, irreversible."""
    if actor is None or not actor.is_admin:
        raise exceptions.Forbidden('Only an admin can delete orders')
    pk = _parse_uuid(order_id)
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=pk).first()
        if order is None:
            raise exceptions.NotFound('Order not found')
        user_id = order.user_id
        order.delete()
    logger.info('Order %s deleted by admin %s', pk, actor.id)
    bus.publish_on_commit(ChangeEvent(ORDERS, DELETE, pk, user_id=user_id))
    return pk


# --- Notification inbox ---

def _require_actor(actor):
    if actor is None:
        raise exceptions.Forbidden('Authentication required')


def _list_limit(limit):
    default = getattr(settings, 'CAFE_NOTIFICATION_LIST_LIMIT', 50)
    if limit is None or limit == '':
        return min(default, NOTIFICATION_LIST_MAX)
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise exceptions.ValidationError('limit must be an integer', field='limit')
    return max(1, min(limit, NOTIFICATION_LIST_MAX))


@retry_read
def list_notifications(actor, unread_only=False, limit=None):
    """The actor's notifications, most recent first, capped."""
    _require_actor(actor)
    qs = Notification.objects.filter(user_id=actor.id)
    if unread_only:
        qs = qs.filter(status=NotificationStatus.UNREAD)
    return list(qs.order_by('-created_at')[:_list_limit(limit)])


@retry_read
def unread_count(actor):
    _require_actor(actor)
    return Notification.objects.filter(user_id=actor.id, status=NotificationStatus.UNREAD).count()


def _publish_notification_read(notification_id, user_id):
    bus.publish_on_commit(ChangeEvent(
        NOTIFICATIONS, UPDATE, notification_id, user_id=user_id,
        changes={'status': NotificationStatus.READ},
    ))


def mark_notification_read(notification_id, actor):
    _require_actor(actor)
    pk = _parse_uuid(notification_id, what='Notification')
    notification = Notification.objects.filter(pk=pk).first()
    if notification is None:
        raise exceptions.NotFound('Notification not found')
    if notification.user_id != actor.id:
        raise exceptions.Forbidden('You can only read your own notifications')
    if notification.status == NotificationStatus.READ:
        return notification
    Notification.objects.filter(pk=pk, status=NotificationStatus.UNREAD).update(
        status=NotificationStatus.READ
    )
    notification.status = NotificationStatus.READ
    _publish_notification_read(pk, actor.id)
    return notification


def mark_all_read(actor):
    """Mark every unread notification of the actor read. Returns how many changed."""
    _require_actor(actor)
    qs = Notification.objects.filter(user_id=actor.id, status=NotificationStatus.UNREAD)
    ids = list(qs.values_list('pk', flat=True))
    if not ids:
        return 0
    count = Notification.objects.filter(pk__in=ids, status=NotificationStatus.UNREAD).update(
        status=NotificationStatus.READ
    )
    for pk in ids:
        _publish_notification_read(pk, actor.id)
    return count


# --- Subscriptions ---

def open_order_feed(on_event, change_bus=None):
    """
    Client-side handle for the live order feed. `on_event(event, order)`
    receives the re-fetched order, or None when it was deleted. Call
    feed.follow(role, identity) to (re)subscribe; the feed holds at most one
    subscription and drops the old one when role or identity changes.
    """
    def handle(event):
        if event.table != ORDERS:
            return
        order = None
        if event.action != DELETE:
            try:
                order = get_order(event.record_id)
            except exceptions.NotFound:
                order = None
        on_event(event, order)

    return OrderFeed(change_bus or bus, handle)


def subscribe_orders(actor, on_event, change_bus=None, feed=None):
    """
    Subscribe `actor` to order events and return the Subscription; call
    cancel() to stop. Pass the `feed` from open_order_feed to keep one
    subscription per client across identity changes.
    """
    _require_actor(actor)
    feed = feed or open_order_feed(on_event, change_bus=change_bus)
    return feed.follow(actor.role, actor.id)
