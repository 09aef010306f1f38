from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from cafe import exceptions
from cafe.permissions import admin_required
from cafe.reports import get_sales_stats
from cafe.utils import auth_required, error_response


@auth_required
@admin_required
@require_http_methods(['GET'])
def sales_report(request):
    """GET /api/reports/sales/?period=today|week|month"""
    period = (request.GET.get('period') or 'today').strip().lower()
    try:
        stats = get_sales_stats(period)
    except exceptions.OrderLifecycleError as e:
        return error_response(e)
    return JsonResponse(stats.to_dict())
