"""
Admin API URLs for templates and dashboard stats
"""
from django.urls import path

from .admin_views import AdminStatsView, PendingTemplatesView

urlpatterns = [
    path('templates/pending/', PendingTemplatesView.as_view(), name='admin-pending-templates'),
    path('stats/', AdminStatsView.as_view(), name='admin-stats'),
]
