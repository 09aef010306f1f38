"""
WebSocket consumer for the live order feed. URL: /ws/orders/?token=...

Admins receive every order event; customers receive events for their own
orders. Both receive their own notification events. Each event is re-fetched
from the database before it is sent, so clients always get the full order.
"""
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from rest_framework.authtoken.models import Token

from cafe import exceptions
from cafe.models import Notification
from cafe.permissions import actor_from_user
from cafe.realtime.bus import DELETE, groups_for
from cafe.utils import notification_to_dict, order_to_dict

logger = logging.getLogger(__name__)

CLOSE_MISSING_TOKEN = 4001
CLOSE_INVALID_TOKEN = 4003


@database_sync_to_async
def authenticate(token_key):
    """Resolve an active user from a DRF token key, or None."""
    try:
        token = Token.objects.select_related('user').get(key=token_key)
    except Token.DoesNotExist:
        return None
    return token.user if token.user.is_active else None


@database_sync_to_async
def fetch_order(order_id):
    from cafe import services
    try:
        return order_to_dict(services.get_order(order_id))
    except exceptions.NotFound:
        return None


@database_sync_to_async
def fetch_notification(notification_id, user_id):
    n = Notification.objects.filter(pk=notification_id, user_id=user_id).first()
    return notification_to_dict(n) if n else None


class OrderFeedConsumer(AsyncJsonWebsocketConsumer):

    async def connect(self):
        self.group_names = []
        params = parse_qs(self.scope.get('query_string', b'').decode())
        token = (params.get('token') or [''])[0].strip()
        if not token:
            await self.close(code=CLOSE_MISSING_TOKEN)
            return
        user = await authenticate(token)
        if user is None:
            await self.close(code=CLOSE_INVALID_TOKEN)
            return
        self.actor = actor_from_user(user)
        self.group_names = groups_for(self.actor.role, self.actor.id)
        for group in self.group_names:
            await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()
        await self.send_json({'type': 'subscribed', 'role': self.actor.role, 'user_id': self.actor.id})

    async def disconnect(self, close_code):
        groups, self.group_names = getattr(self, 'group_names', []), []
        for group in groups:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    async def order_change(self, event):
        """Handle an order event from the bus: re-fetch and push the full order."""
        order_id = event.get('record_id')
        action = event.get('action')
        if action == DELETE:
            await self.send_json({'type': 'order', 'action': action, 'order_id': order_id, 'order': None})
            return
        order = await fetch_order(order_id)
        if order is None:
            logger.info('Order %s vanished before re-fetch', order_id)
            await self.send_json({'type': 'order', 'action': DELETE, 'order_id': order_id, 'order': None})
            return
        await self.send_json({'type': 'order', 'action': action, 'order_id': order_id, 'order': order})

    async def notification_change(self, event):
        notification = await fetch_notification(event.get('record_id'), self.actor.id)
        if notification is None:
            return
        await self.send_json({
            'type': 'notification',
            'action': event.get('action'),
            'notification': notification,
        })
