"""
Best-effort push delivery to a user's registered device via FCM.
Uses the legacy FCM HTTP API when FCM_SERVER_KEY is set; otherwise a logged no-op.
Failures are logged and reported as False, never raised.
"""
import json
import logging
import urllib.request

from django.conf import settings

logger = logging.getLogger(__name__)

FCM_SEND_URL = 'https://fcm.googleapis.com/fcm/send'


def build_payload(token, title, message, tag=None, url=None, order_id=None):
    payload = {
        'to': token.strip(),
        'notification': {'title': title, 'body': message},
        'priority': 'high',
    }
    if tag:
        payload['notification']['tag'] = tag
    if url:
        payload['notification']['click_action'] = url
    data = {'url': url, 'order_id': order_id, 'tag': tag}
    data = {k: str(v) for k, v in data.items() if v}
    if data:
        payload['data'] = data
    return payload


def send_push(user, title, message, tag=None, url='/orders', order_id=None):
    """
    Push (title, message) to `user` if they registered a device token.
    Returns True if sent or skipped (no token / not configured), False on send error.
    """
    token = (getattr(user, 'fcm_token', '') or '').strip()
    if not token:
        return True
    server_key = getattr(settings, 'FCM_SERVER_KEY', '')
    if not server_key:
        logger.info('FCM not configured (no FCM_SERVER_KEY); skipping push to user %s', user.pk)
        return True
    payload = build_payload(token, title, message, tag=tag, url=url, order_id=order_id)
    req = urllib.request.Request(
        FCM_SEND_URL,
        data=json.dumps(payload).encode('utf-8'),
        headers={
            'Authorization': f'key={server_key}',
            'Content-Type': 'application/json',
        },
        method='POST',
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            if 200 <= resp.getcode() < 300:
                return True
            logger.warning('FCM returned %s for user %s', resp.getcode(), user.pk)
            return False
    except Exception as e:
        logger.exception('FCM send to user %s failed: %s', user.pk, e)
        return False
