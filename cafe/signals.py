"""
Model hooks that feed the realtime bus.

Order mutations are conditional UPDATEs that bypass post_save, so the service
layer publishes those itself. Notifications are always inserted through the
ORM, so their insert events are published here.
"""
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Notification
from .realtime.bus import INSERT, NOTIFICATIONS, ChangeEvent, bus


@receiver(post_save, sender=Notification)
def on_notification_save(sender, instance, created, **kwargs):
    if not created:
        return
    bus.publish_on_commit(ChangeEvent(
        NOTIFICATIONS,
        INSERT,
        instance.pk,
        user_id=instance.user_id,
        changes={'type': instance.type, 'order_id': str(instance.order_id)},
    ))
