"""Read-only menu catalog for the order screen. Menus are managed in the Django admin."""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from cafe.models import Menu
from cafe.utils import menu_to_dict


@require_http_methods(['GET'])
def menu_list(request):
    """GET /api/menus/?category= : available menus, ordered by category then name."""
    qs = Menu.objects.filter(is_available=True)
    category = (request.GET.get('category') or '').strip()
    if category:
        qs = qs.filter(category=category)
    results = [menu_to_dict(m) for m in qs.order_by('category', 'name')]
    return JsonResponse({'results': results})
