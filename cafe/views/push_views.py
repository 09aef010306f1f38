"""Register or clear the device token used for push delivery."""
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from cafe.utils import auth_required, parse_json_body

logger = logging.getLogger(__name__)


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def push_subscribe(request):
    """POST { "token" } : store the FCM device token on the current user."""
    body, err = parse_json_body(request)
    if err:
        return err
    token = body.get('token') or body.get('fcm_token')
    if not isinstance(token, (str, type(None))):
        return JsonResponse({'error': 'token must be a string'}, status=400)
    token = (token or '').strip()
    if not token:
        return JsonResponse({'error': 'token required'}, status=400)
    user = request.user
    user.fcm_token = token
    user.save(update_fields=['fcm_token', 'updated_at'])
    logger.info('Push token registered for user %s', user.pk)
    return JsonResponse({'success': True})


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def push_unsubscribe(request):
    user = request.user
    if user.fcm_token:
        user.fcm_token = ''
        user.save(update_fields=['fcm_token', 'updated_at'])
        logger.info('Push token cleared for user %s', user.pk)
    return JsonResponse({'success': True})
