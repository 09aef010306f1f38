# URL packages - one module per API area
from django.urls import path, include

urlpatterns = [
    path('auth/', include('cafe.urls.auth_urls')),
    path('menus/', include('cafe.urls.menu_urls')),
    path('orders/', include('cafe.urls.order_urls')),
    path('notifications/', include('cafe.urls.notification_urls')),
    path('push/', include('cafe.urls.push_urls')),
    path('reports/', include('cafe.urls.report_urls')),
]
