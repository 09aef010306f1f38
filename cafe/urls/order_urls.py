"""Order API URL configuration."""
from django.urls import path

from cafe.views.order_views import (
    order_cancel,
    order_confirm_payment,
    order_detail,
    order_status,
    orders,
)

urlpatterns = [
    path('', orders),
    path('<uuid:pk>/', order_detail),
    path('<uuid:pk>/status/', order_status),
    path('<uuid:pk>/confirm-payment/', order_confirm_payment),
    path('<uuid:pk>/cancel/', order_cancel),
]
