from django.urls import path

from cafe.views.notification_views import (
    notification_list,
    notification_read,
    notification_read_all,
    notification_unread_count,
)

urlpatterns = [
    path('', notification_list),
    path('unread-count/', notification_unread_count),
    path('read-all/', notification_read_all),
    path('<uuid:pk>/read/', notification_read),
]
