"""
Order API: place, list, read, change status, confirm payment, cancel and delete.
Lifecycle errors are returned as { "error", "code", ... } with their HTTP status.
"""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from cafe import exceptions, services
from cafe.permissions import actor_from_user, admin_required
from cafe.utils import (
    auth_optional,
    auth_required,
    clean_text,
    error_response,
    order_to_dict,
    parse_json_body,
)


def _create(request):
    body, err = parse_json_body(request)
    if err:
        return err
    user = request.user
    actor = actor_from_user(user)
    customer_name = body.get('customer_name')
    church_group = body.get('church_group')
    if actor is not None:
        customer_name = customer_name or user.name or user.username
        church_group = church_group if church_group is not None else user.church_group
    try:
        order = services.create_order(
            customer_name=customer_name,
            payment_method=body.get('payment_method'),
            items=body.get('items'),
            church_group=church_group,
            notes=body.get('notes'),
            actor=actor,
        )
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(order_to_dict(order), status=201)


def _list(request):
    actor = actor_from_user(request.user)
    if actor is None:
        return JsonResponse({'error': 'Authentication required'}, status=401)
    status = (request.GET.get('status') or '').strip() or None
    payment_status = (request.GET.get('payment_status') or '').strip() or None
    user_id = None
    if actor.is_customer:
        user_id = actor.id
    elif request.GET.get('user_id'):
        try:
            user_id = int(request.GET['user_id'])
        except ValueError:
            return JsonResponse({'error': 'Invalid user_id', 'code': 'validation_error'}, status=400)
    try:
        orders = services.list_orders(status=status, user_id=user_id, payment_status=payment_status)
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse({'results': [order_to_dict(o) for o in orders]})


@csrf_exempt
@auth_optional
@require_http_methods(['GET', 'POST'])
def orders(request):
    """GET: list orders (customers see their own). POST: place an order, account optional."""
    if request.method == 'POST':
        return _create(request)
    return _list(request)


@csrf_exempt
@auth_required
@require_http_methods(['GET', 'DELETE'])
def order_detail(request, pk):
    """GET: order with items (owner or admin). DELETE: hard delete (admin)."""
    actor = actor_from_user(request.user)
    try:
        if request.method == 'DELETE':
            services.hard_delete_order(pk, actor)
            return JsonResponse({'success': True, 'id': str(pk)})
        order = services.get_order(pk, actor=actor)
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def order_status(request, pk):
    """POST { "status", optional "expected_status", optional "reason" }"""
    body, err = parse_json_body(request)
    if err:
        return err
    try:
        new_status = clean_text(body.get('status'), 'status')
        if not new_status:
            raise exceptions.ValidationError('status required', field='status')
        order = services.change_status(
            pk,
            new_status,
            actor_from_user(request.user),
            expected_status=body.get('expected_status'),
            reason=body.get('reason'),
        )
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@auth_required
@admin_required
@require_http_methods(['POST'])
def order_confirm_payment(request, pk):
    try:
        order = services.confirm_payment(pk, actor_from_user(request.user))
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@auth_required
@require_http_methods(['POST'])
def order_cancel(request, pk):
    """POST { "reason", optional "custom_reason" when reason is "Other" }"""
    body, err = parse_json_body(request)
    if err:
        return err
    try:
        order = services.cancel_order(
            pk,
            body.get('reason'),
            actor_from_user(request.user),
            custom_reason=body.get('custom_reason'),
        )
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(order_to_dict(order))
