from django.urls import path

from cafe.views.report_views import sales_report

urlpatterns = [
    path('sales/', sales_report),
]
