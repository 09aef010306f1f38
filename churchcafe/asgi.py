"""
ASGI config for the churchcafe project.

HTTP goes to Django; websocket connections go to the realtime order feed.
"""

import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'churchcafe.settings')

from django.core.asgi import get_asgi_application

django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter
from cafe.realtime.routing import websocket_urlpatterns

application = ProtocolTypeRouter({
    'http': django_asgi_app,
    'websocket': URLRouter(websocket_urlpatterns),
})
