import pytest
from rest_framework.authtoken.models import Token

from cafe import services
from cafe.models import Menu, User, UserRole
from cafe.permissions import actor_from_user


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='barista', password='pw-barista-1', name='Barista', role=UserRole.ADMIN,
    )


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        username='grace', password='pw-grace-1', name='Grace', church_group='Youth',
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(username='john', password='pw-john-1', name='John')


@pytest.fixture
def admin_actor(admin_user):
    return actor_from_user(admin_user)


@pytest.fixture
def customer_actor(customer):
    return actor_from_user(customer)


@pytest.fixture
def other_actor(other_customer):
    return actor_from_user(other_customer)


@pytest.fixture
def americano(db):
    return Menu.objects.create(name='Americano', price=3000, category='Coffee')


@pytest.fixture
def latte(db):
    return Menu.objects.create(name='Latte', price=1500, category='Coffee')


@pytest.fixture
def make_order(americano, latte):
    """Place an order as `actor` (None = anonymous) with two Americanos and one Latte."""
    def _make(actor=None, customer_name='Grace', church_group='Youth', payment_method='cash'):
        return services.create_order(
            customer_name=customer_name,
            payment_method=payment_method,
            church_group=church_group,
            items=[
                {'menu_id': str(americano.pk), 'quantity': 2, 'unit_price': 3000},
                {'menu_id': str(latte.pk), 'quantity': 1, 'unit_price': 1500},
            ],
            actor=actor,
        )
    return _make


@pytest.fixture
def bearer(db):
    """Authorization header kwargs for the Django test client."""
    def _bearer(user):
        token, _ = Token.objects.get_or_create(user=user)
        return {'HTTP_AUTHORIZATION': f'Bearer {token.key}'}
    return _bearer
