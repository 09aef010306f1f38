from django.urls import path

from cafe.views.push_views import push_subscribe, push_unsubscribe

urlpatterns = [
    path('subscribe/', push_subscribe),
    path('unsubscribe/', push_unsubscribe),
]
