import uuid

from django.db import models
from django.contrib.auth.models import AbstractUser


# --- Choice constants ---

class UserRole(models.TextChoices):
    CUSTOMER = 'customer', 'Customer'
    ADMIN = 'admin', 'Admin'


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PREPARING = 'preparing', 'Preparing'
    READY = 'ready', 'Ready'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    TRANSFER = 'transfer', 'Transfer'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'


class NotificationType(models.TextChoices):
    NEW_ORDER = 'new_order', 'New order'
    ORDER_PREPARING = 'order_preparing', 'Order preparing'
    ORDER_READY = 'order_ready', 'Order ready'
    ORDER_COMPLETED = 'order_completed', 'Order picked up'
    ORDER_CANCELLED = 'order_cancelled', 'Order cancelled'
    PAYMENT_CONFIRMED = 'payment_confirmed', 'Payment confirmed'


class NotificationStatus(models.TextChoices):
    UNREAD = 'unread', 'Unread'
    READ = 'read', 'Read'


# --- Models ---

class User(AbstractUser):
    """Cafe account. Superusers are treated as admins regardless of role."""
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(
        max_length=20, choices=UserRole.choices, default=UserRole.CUSTOMER
    )
    church_group = models.CharField(max_length=255, blank=True)
    fcm_token = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cafe_user'

    def save(self, *args, **kwargs):
        if not self.name and (self.first_name or self.last_name):
            self.name = f'{self.first_name or ""} {self.last_name or ""}'.strip()
        super().save(*args, **kwargs)

    @property
    def is_cafe_admin(self):
        return self.is_superuser or self.role == UserRole.ADMIN


class Menu(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.PositiveIntegerField()
    category = models.CharField(max_length=100)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cafe_menu'
        ordering = ['category', 'name']

    def __str__(self):
        return self.name


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name='orders',
        null=True, blank=True
    )
    customer_name = models.CharField(max_length=255)
    church_group = models.CharField(max_length=255, blank=True)
    total_amount = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cafe_order'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='cafe_order_status_idx'),
            models.Index(fields=['created_at'], name='cafe_order_created_idx'),
        ]

    def __str__(self):
        return f'Order {self.id} ({self.customer_name})'

    @property
    def display_name(self):
        if self.church_group:
            return f'{self.customer_name}({self.church_group})'
        return self.customer_name


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='items'
    )
    menu = models.ForeignKey(
        Menu, on_delete=models.PROTECT, related_name='order_items'
    )
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveIntegerField()
    total_price = models.PositiveIntegerField()
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cafe_order_item'
        ordering = ['created_at', 'id']

    def __str__(self):
        return f'{self.menu_id} x{self.quantity} (Order {self.order_id})'


class Notification(models.Model):
    """Message addressed to one user about one order. Only `status` changes after insert."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='notifications'
    )
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='notifications'
    )
    type = models.CharField(max_length=32, choices=NotificationType.choices)
    message = models.TextField()
    status = models.CharField(
        max_length=10, choices=NotificationStatus.choices,
        default=NotificationStatus.UNREAD
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cafe_notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='cafe_notif_user_status_idx'),
        ]

    def __str__(self):
        return f'Notification {self.type} -> {self.user_id}'

    def save(self, *args, **kwargs):
        update_fields = kwargs.get('update_fields')
        if not self._state.adding and (update_fields is None or set(update_fields) - {'status'}):
            raise ValueError('Notification is immutable except for status.')
        super().save(*args, **kwargs)
