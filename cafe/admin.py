from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserChangeForm, UserCreationForm

from .models import Menu, Notification, Order, OrderItem, User


# --- Inlines ---

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    autocomplete_fields = ['menu']
    readonly_fields = ('unit_price', 'total_price', 'created_at')


# --- User (replace default auth User admin) ---


class CustomUserCreationForm(UserCreationForm):
    """Add form must declare custom fields so they render and save."""
    class Meta(UserCreationForm.Meta):
        model = User
        fields = UserCreationForm.Meta.fields + ('name', 'role', 'church_group')


class CustomUserChangeForm(UserChangeForm):
    class Meta:
        model = User
        fields = '__all__'


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    form = CustomUserChangeForm
    add_form = CustomUserCreationForm
    list_display = ('username', 'name', 'role', 'church_group', 'is_active', 'created_at')
    list_filter = ('role', 'is_active', 'is_superuser')
    search_fields = ('name', 'username', 'email', 'church_group')
    ordering = ('-date_joined',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Cafe', {
            'fields': ('name', 'role', 'church_group', 'fcm_token', 'created_at', 'updated_at')
        }),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Cafe', {
            'fields': ('name', 'role', 'church_group')
        }),
    )


@admin.register(Menu)
class MenuAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'is_available', 'updated_at')
    list_filter = ('category', 'is_available')
    list_editable = ('is_available',)
    search_fields = ('name', 'category')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Status and payment are driven through the API so transitions stay validated and notified."""
    list_display = (
        'id', 'customer_name', 'church_group', 'status', 'payment_method',
        'payment_status', 'total_amount', 'created_at',
    )
    list_filter = ('status', 'payment_status', 'payment_method')
    search_fields = ('id', 'customer_name', 'church_group', 'user__username')
    raw_id_fields = ('user',)
    inlines = (OrderItemInline,)
    readonly_fields = (
        'status', 'payment_status', 'total_amount', 'cancellation_reason',
        'created_at', 'updated_at',
    )


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'order', 'type', 'status', 'created_at')
    list_filter = ('type', 'status')
    search_fields = ('user__username', 'message')
    raw_id_fields = ('user', 'order')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
