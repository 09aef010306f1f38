"""
Actor model and role checks.
Customer: may place orders, read and cancel own pending orders, read own notifications.
Admin: role=admin or superuser; may drive any order through the lifecycle, confirm payment, hard-delete, view reports.
"""
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from django.http import JsonResponse

from cafe.models import UserRole


@dataclass(frozen=True)
class Actor:
    """Identity + role performing a lifecycle mutation."""
    id: int
    role: str

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def is_customer(self):
        return self.role == UserRole.CUSTOMER


def actor_from_user(user) -> Optional[Actor]:
    """Build an Actor from an authenticated user; None for anonymous."""
    if not user or not getattr(user, 'is_authenticated', False):
        return None
    role = UserRole.ADMIN if getattr(user, 'is_cafe_admin', False) else UserRole.CUSTOMER
    return Actor(id=user.pk, role=role)


def is_admin(user):
    """Return True iff user is authenticated and a cafe admin."""
    actor = actor_from_user(user)
    return bool(actor and actor.is_admin)


def admin_required(view_func):
    """
    Decorator: after auth, require the admin role.
    Return 403 with detail if not.
    """
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        if not is_admin(getattr(request, 'user', None)):
            return JsonResponse(
                {'error': 'Admin access required', 'code': 'forbidden'},
                status=403,
            )
        return view_func(request, *args, **kwargs)
    return wrapped
