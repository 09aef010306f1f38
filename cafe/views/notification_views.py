"""Notification inbox for the current user."""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from cafe import exceptions, services
from cafe.permissions import actor_from_user
from cafe.utils import auth_required, error_response, notification_to_dict


@auth_required
@require_http_methods(['GET'])
def notification_list(request):
    """GET ?unread_only=1&limit=N : own notifications, newest first (default 50, max 100)."""
    unread_only = request.GET.get('unread_only', '').lower() in ('1', 'true', 'yes')
    try:
        results = services.list_notifications(
            actor_from_user(request.user),
            unread_only=unread_only,
            limit=request.GET.get('limit'),
        )
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse({'results': [notification_to_dict(n) for n in results]})


@auth_required
@require_http_methods(['GET'])
def notification_unread_count(request):
    return JsonResponse({'count': services.unread_count(actor_from_user(request.user))})


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def notification_read(request, pk):
    try:
        n = services.mark_notification_read(pk, actor_from_user(request.user))
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(notification_to_dict(n))


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def notification_read_all(request):
    updated = services.mark_all_read(actor_from_user(request.user))
    return JsonResponse({'success': True, 'updated': updated})
