from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def root_view(request):
    """Root URL: simple API info."""
    return JsonResponse({
        'name': 'Church Cafe API',
        'api': '/api/',
        'admin': '/admin/',
        'websocket': '/ws/orders/',
    })


urlpatterns = [
    path('', root_view),
    path('api/', include('cafe.urls')),
    path('admin/', admin.site.urls),
]
