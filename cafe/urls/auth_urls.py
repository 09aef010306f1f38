from django.urls import path

from cafe.views.auth_views import login, logout, me

urlpatterns = [
    path('login/', login),
    path('logout/', logout),
    path('me/', me),
]
