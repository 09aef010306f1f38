"""
Shared helpers for the API: token auth decorators, JSON body parsing,
error responses, record serialization and read retry.
"""
import json
import logging
import time
from functools import wraps

from django.conf import settings
from django.db import InterfaceError, OperationalError
from django.http import JsonResponse

from cafe import exceptions

logger = logging.getLogger(__name__)


# --- Auth ---

def _user_from_bearer(request):
    """Return (user, error_response). Both None when no Authorization header is present."""
    from rest_framework.authtoken.models import Token

    auth_header = request.META.get('HTTP_AUTHORIZATION')
    if not auth_header:
        return None, None
    if not auth_header.startswith('Bearer '):
        return None, JsonResponse({'error': 'Authentication required'}, status=401)
    key = auth_header[7:].strip()
    try:
        token = Token.objects.select_related('user').get(key=key)
    except Token.DoesNotExist:
        return None, JsonResponse({'error': 'Invalid token'}, status=401)
    if not token.user.is_active:
        return None, JsonResponse({'error': 'Invalid token'}, status=401)
    return token.user, None


def auth_required(view_func):
    """Decorator: set request.user from Authorization Bearer token (DRF Token). Return 401 if missing or invalid."""
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        user, err = _user_from_bearer(request)
        if err is not None:
            return err
        if user is None:
            return JsonResponse({'error': 'Authentication required'}, status=401)
        request.user = user
        return view_func(request, *args, **kwargs)
    return wrapped


def auth_optional(view_func):
    """Decorator: like auth_required, but a request without Authorization stays anonymous."""
    from django.contrib.auth.models import AnonymousUser

    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        user, err = _user_from_bearer(request)
        if err is not None:
            return err
        request.user = user if user is not None else AnonymousUser()
        return view_func(request, *args, **kwargs)
    return wrapped


# --- Request / response ---

def parse_json_body(request):
    """Return (body_dict, error_response)."""
    try:
        body = json.loads(request.body) if request.body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, JsonResponse({'error': 'Invalid JSON'}, status=400)
    if not isinstance(body, dict):
        return None, JsonResponse({'error': 'Invalid JSON'}, status=400)
    return body, None


def clean_text(value, field):
    """Stripped text of an optional JSON string field. Non-string values raise ValidationError."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise exceptions.ValidationError(f'{field} must be a string', field=field)
    return value.strip()


def error_response(exc):
    """JsonResponse for an OrderLifecycleError."""
    return JsonResponse(exc.to_dict(), status=exc.status_code)


# --- Serialization (snake_case, JSON-safe) ---

def _iso(dt):
    return dt.isoformat() if dt else None


def menu_to_dict(m):
    if m is None:
        return None
    return {
        'id': str(m.id),
        'name': m.name,
        'description': m.description or '',
        'price': m.price,
        'category': m.category,
        'is_available': m.is_available,
    }


def order_item_to_dict(i):
    return {
        'id': str(i.id),
        'order_id': str(i.order_id),
        'menu_id': str(i.menu_id),
        'menu': menu_to_dict(i.menu),
        'quantity': i.quantity,
        'unit_price': i.unit_price,
        'total_price': i.total_price,
        'notes': i.notes or '',
    }


def order_to_dict(o, include_items=True):
    d = {
        'id': str(o.id),
        'user_id': o.user_id,
        'customer_name': o.customer_name,
        'church_group': o.church_group or None,
        'total_amount': o.total_amount,
        'status': o.status,
        'payment_method': o.payment_method,
        'payment_status': o.payment_status,
        'notes': o.notes or None,
        'cancellation_reason': o.cancellation_reason or None,
        'created_at': _iso(o.created_at),
        'updated_at': _iso(o.updated_at),
    }
    if include_items:
        d['items'] = [order_item_to_dict(i) for i in o.items.all()]
    return d


def notification_to_dict(n):
    return {
        'id': str(n.id),
        'user_id': n.user_id,
        'order_id': str(n.order_id),
        'type': n.type,
        'message': n.message,
        'status': n.status,
        'created_at': _iso(n.created_at),
    }


def user_to_dict(user):
    from cafe.permissions import actor_from_user

    actor = actor_from_user(user)
    return {
        'id': user.id,
        'username': user.username,
        'name': user.name or user.username,
        'email': user.email or '',
        'role': actor.role if actor else None,
        'church_group': user.church_group or None,
        'push_enabled': bool(user.fcm_token),
    }


# --- Read retry ---

TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


def retry_read(func):
    """
    Decorator for read-only store calls: retry transient database errors with
    exponential backoff (CAFE_STORE_READ_RETRIES attempts, CAFE_STORE_READ_BACKOFF
    seconds doubling per attempt). Never apply to writes.
    """
    @wraps(func)
    def wrapped(*args, **kwargs):
        attempts = max(1, getattr(settings, 'CAFE_STORE_READ_RETRIES', 3))
        delay = getattr(settings, 'CAFE_STORE_READ_BACKOFF', 0.05)
        for attempt in range(attempts):
            try:
                return func(*args, **kwargs)
            except TRANSIENT_DB_ERRORS as e:
                if attempt == attempts - 1:
                    raise
                logger.warning(
                    '%s attempt %d/%d failed: %s', func.__name__, attempt + 1, attempts, e
                )
                time.sleep(delay * (2 ** attempt))
    return wrapped
