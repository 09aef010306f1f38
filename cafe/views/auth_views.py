"""Token login, logout and current user."""
from django.contrib.auth import authenticate
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework.authtoken.models import Token

from cafe.utils import auth_required, parse_json_body, user_to_dict


@csrf_exempt
@require_http_methods(['POST'])
def login(request):
    """POST { "username", "password" } -> { "token", "user" } or 401."""
    body, err = parse_json_body(request)
    if err:
        return err
    username = body.get('username')
    password = body.get('password')
    if not isinstance(username, (str, type(None))) or not isinstance(password, (str, type(None))):
        return JsonResponse({'error': 'username and password must be strings'}, status=400)
    username = (username or '').strip()
    if not username:
        return JsonResponse({'error': 'username required'}, status=400)
    if not password:
        return JsonResponse({'error': 'password required'}, status=400)
    user = authenticate(request, username=username, password=password)
    if user is None:
        return JsonResponse({'error': 'Invalid username or password'}, status=401)
    token, _ = Token.objects.get_or_create(user=user)
    return JsonResponse({'token': token.key, 'user': user_to_dict(user)})


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def logout(request):
    Token.objects.filter(user=request.user).delete()
    return JsonResponse({'success': True})


@auth_required
@require_http_methods(['GET'])
def me(request):
    return JsonResponse({'user': user_to_dict(request.user)})
