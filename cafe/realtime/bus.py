"""
Realtime change bus for order and notification mutations.

Events are delivered to in-process subscribers and forwarded to the channel
layer, where websocket consumers pick them up by group:

    orders_admin               every order event (admins)
    orders_user_<user_id>      order events for that customer's orders
    notifications_user_<id>    notification events addressed to that user

Delivery is best-effort and at-most-once; there is no replay for clients that
were disconnected. Subscribers re-fetch the record rather than trust the event.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from cafe.models import UserRole

logger = logging.getLogger(__name__)

ORDERS = 'orders'
NOTIFICATIONS = 'notifications'

INSERT = 'insert'
UPDATE = 'update'
DELETE = 'delete'

ADMIN_ORDERS_GROUP = 'orders_admin'


def customer_orders_group(user_id):
    return f'orders_user_{user_id}'


def notifications_group(user_id):
    return f'notifications_user_{user_id}'


def groups_for(role, identity):
    """Channel-layer groups a client with (role, identity) listens on."""
    groups = []
    if role == UserRole.ADMIN:
        groups.append(ADMIN_ORDERS_GROUP)
    elif identity is not None:
        groups.append(customer_orders_group(identity))
    if identity is not None:
        groups.append(notifications_group(identity))
    return groups


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str
    record_id: str
    user_id: Optional[int] = None
    changes: dict = field(default_factory=dict)

    def groups(self):
        if self.table == ORDERS:
            groups = [ADMIN_ORDERS_GROUP]
            if self.user_id is not None:
                groups.append(customer_orders_group(self.user_id))
            return groups
        if self.table == NOTIFICATIONS and self.user_id is not None:
            return [notifications_group(self.user_id)]
        return []

    def to_message(self):
        """Channel-layer message; `type` selects the consumer handler."""
        handler = 'order.change' if self.table == ORDERS else 'notification.change'
        return {
            'type': handler,
            'table': self.table,
            'action': self.action,
            'record_id': str(self.record_id),
            'user_id': self.user_id,
            'changes': dict(self.changes),
        }


class Subscription:
    """Cancelable handle for one subscriber. cancel() is idempotent."""

    def __init__(self, bus, role, identity, on_event):
        self._bus = bus
        self.role = role
        self.identity = identity
        self._on_event = on_event
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def key(self):
        return (self.role, self.identity)

    @property
    def active(self):
        return not self._cancelled

    def matches(self, event):
        if event.table == ORDERS:
            if self.role == UserRole.ADMIN:
                return True
            return event.user_id is not None and event.user_id == self.identity
        if event.table == NOTIFICATIONS:
            return event.user_id is not None and event.user_id == self.identity
        return False

    def deliver(self, event):
        if self._cancelled:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception('Subscriber %s failed handling %s %s', self.key, event.table, event.action)

    def cancel(self):
        """Stop delivery. Returns True the first time, False on repeat calls."""
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
        self._bus._discard(self)
        return True


class ChangeBus:

    def __init__(self, forward=True):
        self.forward = forward
        self._lock = threading.Lock()
        self._subscriptions = []

    def subscribe(self, role, identity, on_event):
        sub = Subscription(self, role, identity, on_event)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _discard(self, sub):
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event):
        with self._lock:
            subscribers = list(self._subscriptions)
        for sub in subscribers:
            if sub.matches(event):
                sub.deliver(event)
        if self.forward:
            self._forward(event)

    def _forward(self, event):
        layer = get_channel_layer()
        if layer is None:
            return
        message = event.to_message()
        for group in event.groups():
            try:
                async_to_sync(layer.group_send)(group, message)
            except Exception:
                logger.exception('Channel layer send to %s failed', group)

    def publish_on_commit(self, event):
        """Publish once the current transaction commits (immediately in autocommit)."""
        transaction.on_commit(lambda: self.publish(event))


class OrderFeed:
    """
    One client's live feed. Holds at most one subscription; following a
    different (role, identity) tears the previous one down first.
    """

    def __init__(self, bus, on_event):
        self._bus = bus
        self._on_event = on_event
        self._subscription = None

    @property
    def subscription(self):
        return self._subscription

    def follow(self, role, identity):
        current = self._subscription
        if current is not None and current.active and current.key == (role, identity):
            return current
        self.close()
        self._subscription = self._bus.subscribe(role, identity, self._on_event)
        return self._subscription

    def close(self):
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None


bus = ChangeBus()
