"""
Sales aggregator. Recomputed from the orders table on every call.

Windows (in settings.TIME_ZONE):
    today  local midnight .. now
    week   now - 7 days .. now
    month  first day of the month, midnight .. now

Revenue figures only count orders whose payment is confirmed. Menu, group
and hourly breakdowns leave cancelled orders out.
"""
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import List

from django.db.models import Count, Q, Sum
from django.db.models.functions import ExtractHour
from django.utils import timezone

from cafe import exceptions
from cafe.models import Order, OrderItem, OrderStatus, PaymentStatus
from cafe.utils import retry_read

PERIODS = ('today', 'week', 'month')

CONFIRMED = Q(payment_status=PaymentStatus.CONFIRMED)


@dataclass
class SalesStats:
    period: str
    date_from: str
    date_to: str
    total_revenue: int = 0
    total_orders: int = 0
    confirmed_orders: int = 0
    pending_orders: int = 0
    cancelled_orders: int = 0
    status_stats: dict = field(default_factory=dict)
    menu_stats: List[dict] = field(default_factory=list)
    group_stats: List[dict] = field(default_factory=list)
    hourly_stats: List[dict] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


def period_window(period, now=None):
    """Return (start, end) aware datetimes for a report period."""
    if period not in PERIODS:
        raise exceptions.ValidationError(
            f'period must be one of {", ".join(PERIODS)}', field='period'
        )
    now = timezone.localtime(now or timezone.now())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == 'today':
        return midnight, now
    if period == 'week':
        return now - timedelta(days=7), now
    return midnight.replace(day=1), now


def _menu_stats(orders):
    rows = (
        OrderItem.objects.filter(order__in=orders)
        .exclude(order__status=OrderStatus.CANCELLED)
        .values('menu_id', 'menu__name')
        .annotate(
            quantity=Sum('quantity'),
            order_count=Count('order', distinct=True),
            revenue=Sum('total_price', filter=Q(order__payment_status=PaymentStatus.CONFIRMED)),
        )
        .order_by('-quantity', 'menu__name')
    )
    return [
        {
            'menu_id': str(r['menu_id']),
            'name': r['menu__name'],
            'quantity': r['quantity'] or 0,
            'order_count': r['order_count'],
            'revenue': r['revenue'] or 0,
        }
        for r in rows
    ]


def _group_stats(orders):
    rows = (
        orders.exclude(status=OrderStatus.CANCELLED)
        .values('church_group')
        .annotate(order_count=Count('id'), revenue=Sum('total_amount', filter=CONFIRMED))
        .order_by('-order_count', 'church_group')
    )
    return [
        {
            'church_group': r['church_group'] or None,
            'order_count': r['order_count'],
            'revenue': r['revenue'] or 0,
        }
        for r in rows
    ]


def _hourly_stats(orders):
    counts = dict(
        orders.exclude(status=OrderStatus.CANCELLED)
        .annotate(hour=ExtractHour('created_at', tzinfo=timezone.get_current_timezone()))
        .order_by()
        .values('hour')
        .annotate(n=Count('id'))
        .values_list('hour', 'n')
    )
    return [{'hour': h, 'order_count': counts.get(h, 0)} for h in range(24)]


@retry_read
def get_sales_stats(period='today', now=None) -> SalesStats:
    start, end = period_window(period, now=now)
    orders = Order.objects.filter(created_at__gte=start, created_at__lte=end)

    totals = orders.aggregate(
        total_orders=Count('id'),
        total_revenue=Sum('total_amount', filter=CONFIRMED),
        confirmed_orders=Count('id', filter=CONFIRMED),
        pending_orders=Count(
            'id',
            filter=Q(payment_status=PaymentStatus.PENDING) & ~Q(status=OrderStatus.CANCELLED),
        ),
        cancelled_orders=Count('id', filter=Q(status=OrderStatus.CANCELLED)),
    )
    by_status = dict(orders.order_by().values('status').annotate(n=Count('id')).values_list('status', 'n'))

    return SalesStats(
        period=period,
        date_from=start.isoformat(),
        date_to=end.isoformat(),
        total_revenue=totals['total_revenue'] or 0,
        total_orders=totals['total_orders'],
        confirmed_orders=totals['confirmed_orders'],
        pending_orders=totals['pending_orders'],
        cancelled_orders=totals['cancelled_orders'],
        status_stats={s: by_status.get(s, 0) for s in OrderStatus.values},
        menu_stats=_menu_stats(orders),
        group_stats=_group_stats(orders),
        hourly_stats=_hourly_stats(orders),
    )
