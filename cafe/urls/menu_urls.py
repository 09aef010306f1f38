from django.urls import path

from cafe.views.menu_views import menu_list

urlpatterns = [
    path('', menu_list),
]
