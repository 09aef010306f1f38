import pytest
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from rest_framework.authtoken.models import Token

from cafe import services
from cafe.models import OrderStatus, UserRole
from cafe.realtime.bus import (
    ADMIN_ORDERS_GROUP,
    DELETE,
    INSERT,
    NOTIFICATIONS,
    ORDERS,
    UPDATE,
    ChangeBus,
    ChangeEvent,
    OrderFeed,
    groups_for,
)
from cafe.realtime.consumers import OrderFeedConsumer


@pytest.fixture
def local_bus():
    return ChangeBus(forward=False)


def test_admin_sees_all_orders_customer_sees_own(local_bus):
    admin_seen, customer_seen = [], []
    local_bus.subscribe(UserRole.ADMIN, 1, admin_seen.append)
    local_bus.subscribe(UserRole.CUSTOMER, 7, customer_seen.append)

    own = ChangeEvent(ORDERS, INSERT, 'a', user_id=7)
    foreign = ChangeEvent(ORDERS, UPDATE, 'b', user_id=8)
    anonymous = ChangeEvent(ORDERS, INSERT, 'c')
    for event in (own, foreign, anonymous):
        local_bus.publish(event)

    assert admin_seen == [own, foreign, anonymous]
    assert customer_seen == [own]


def test_notification_events_go_to_addressee_only(local_bus):
    seen = []
    local_bus.subscribe(UserRole.ADMIN, 1, seen.append)
    local_bus.publish(ChangeEvent(NOTIFICATIONS, INSERT, 'n1', user_id=2))
    local_bus.publish(ChangeEvent(NOTIFICATIONS, INSERT, 'n2', user_id=1))
    assert [e.record_id for e in seen] == ['n2']


def test_cancel_is_idempotent(local_bus):
    seen = []
    sub = local_bus.subscribe(UserRole.ADMIN, 1, seen.append)
    assert sub.cancel() is True
    assert sub.cancel() is False
    assert local_bus.subscriber_count == 0
    local_bus.publish(ChangeEvent(ORDERS, INSERT, 'a'))
    assert seen == []


def test_failing_subscriber_does_not_block_others(local_bus):
    seen = []

    def broken(event):
        raise RuntimeError('boom')
    local_bus.subscribe(UserRole.ADMIN, 1, broken)
    local_bus.subscribe(UserRole.ADMIN, 2, seen.append)
    local_bus.publish(ChangeEvent(ORDERS, INSERT, 'a'))
    assert len(seen) == 1


def test_feed_keeps_one_subscription_per_identity(local_bus):
    feed = OrderFeed(local_bus, lambda event: None)
    first = feed.follow(UserRole.CUSTOMER, 7)
    assert feed.follow(UserRole.CUSTOMER, 7) is first
    second = feed.follow(UserRole.ADMIN, 7)
    assert second is not first
    assert not first.active
    assert local_bus.subscriber_count == 1
    feed.close()
    feed.close()
    assert local_bus.subscriber_count == 0


def test_groups():
    assert groups_for(UserRole.ADMIN, 1) == [ADMIN_ORDERS_GROUP, 'notifications_user_1']
    assert groups_for(UserRole.CUSTOMER, 7) == ['orders_user_7', 'notifications_user_7']
    assert ChangeEvent(ORDERS, DELETE, 'x', user_id=7).groups() == [ADMIN_ORDERS_GROUP, 'orders_user_7']
    message = ChangeEvent(ORDERS, UPDATE, 'x', user_id=7, changes={'status': 'ready'}).to_message()
    assert message['type'] == 'order.change'
    assert message['changes'] == {'status': 'ready'}


def test_subscribe_orders_refetches_full_order(make_order, admin_actor, customer_actor, local_bus):
    received = []
    sub = services.subscribe_orders(customer_actor, lambda e, o: received.append((e, o)), change_bus=local_bus)
    order = make_order(actor=customer_actor)
    local_bus.publish(ChangeEvent(ORDERS, UPDATE, str(order.pk), user_id=customer_actor.id))
    local_bus.publish(ChangeEvent(ORDERS, DELETE, str(order.pk), user_id=customer_actor.id))
    sub.cancel()
    (event, fetched), (deleted, gone) = received
    assert fetched.pk == order.pk
    assert len(fetched.items.all()) == 2
    assert deleted.action == DELETE and gone is None


def test_order_feed_switches_identity_without_leaking(make_order, admin_actor, customer_actor, local_bus):
    received = []
    feed = services.open_order_feed(lambda e, o: received.append(o), change_bus=local_bus)
    as_customer = services.subscribe_orders(customer_actor, None, feed=feed)
    assert services.subscribe_orders(customer_actor, None, feed=feed) is as_customer
    as_admin = services.subscribe_orders(admin_actor, None, feed=feed)
    assert not as_customer.active
    assert local_bus.subscriber_count == 1

    order = make_order()
    local_bus.publish(ChangeEvent(ORDERS, INSERT, str(order.pk)))
    assert [o.pk for o in received] == [order.pk]
    local_bus.publish(ChangeEvent(NOTIFICATIONS, INSERT, 'n1', user_id=admin_actor.id))
    assert len(received) == 1

    feed.close()
    assert not as_admin.active
    assert local_bus.subscriber_count == 0


def test_service_mutations_publish_after_commit(
    make_order, admin_actor, customer_actor, monkeypatch, django_capture_on_commit_callbacks,
):
    local = ChangeBus(forward=False)
    monkeypatch.setattr('cafe.services.bus', local)
    monkeypatch.setattr('cafe.signals.bus', local)
    seen = []
    local.subscribe(UserRole.CUSTOMER, customer_actor.id, seen.append)

    with django_capture_on_commit_callbacks(execute=True):
        order = make_order(actor=customer_actor)
        services.change_status(order.pk, OrderStatus.PREPARING, admin_actor)

    kinds = [(e.table, e.action) for e in seen]
    assert (ORDERS, INSERT) in kinds
    assert (ORDERS, UPDATE) in kinds
    assert (NOTIFICATIONS, INSERT) in kinds
    update = next(e for e in seen if e.table == ORDERS and e.action == UPDATE)
    assert update.changes == {'status': OrderStatus.PREPARING, 'previous_status': OrderStatus.PENDING}


# --- websocket consumer ---

def _connect(path):
    async def run():
        communicator = WebsocketCommunicator(OrderFeedConsumer.as_asgi(), path)
        connected, code = await communicator.connect()
        await communicator.disconnect()
        return connected, code
    return async_to_sync(run)()


@pytest.mark.django_db(transaction=True)
def test_websocket_requires_token():
    assert _connect('/ws/orders/') == (False, 4001)


@pytest.mark.django_db(transaction=True)
def test_websocket_rejects_unknown_token():
    assert _connect('/ws/orders/?token=nope') == (False, 4003)


@pytest.mark.django_db(transaction=True)
def test_websocket_admin_receives_new_order(admin_user, americano):
    token = Token.objects.create(user=admin_user)

    async def run():
        communicator = WebsocketCommunicator(OrderFeedConsumer.as_asgi(), f'/ws/orders/?token={token.key}')
        connected, _ = await communicator.connect()
        assert connected
        hello = await communicator.receive_json_from()
        assert hello == {'type': 'subscribed', 'role': 'admin', 'user_id': admin_user.pk}

        order = await database_sync_to_async(services.create_order)(
            'Grace', 'cash', [{'menu_id': str(americano.pk), 'quantity': 1}],
        )
        first = await communicator.receive_json_from(timeout=3)
        second = await communicator.receive_json_from(timeout=3)
        await communicator.disconnect()
        return order, first, second

    order, first, second = async_to_sync(run)()
    assert first['type'] == 'order'
    assert first['action'] == INSERT
    assert first['order']['id'] == str(order.pk)
    assert first['order']['items'][0]['menu']['name'] == 'Americano'
    assert second['type'] == 'notification'
    assert second['notification']['order_id'] == str(order.pk)
