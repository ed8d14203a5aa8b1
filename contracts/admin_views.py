"""
Admin API views for templates awaiting approval and dashboard counts
"""
from django.db.models import Count
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.admin_views import AdminAccessMixin
from authentication.models import User
from authentication.roles import ROLES

from .models import Contract, ContractTemplate
from .serializers import ContractTemplateSerializer


class PendingTemplatesView(AdminAccessMixin, generics.ListAPIView):
    """GET /api/v1/admin/templates/pending/ (oldest request first)"""
    serializer_class = ContractTemplateSerializer

    def get_queryset(self):
        return ContractTemplate.objects.filter(
            tenant_id=self.request.user.tenant_id,
            approval_status='pending_approval',
        ).order_by('approval_requested_at', 'created_at')


def _counts(queryset, field, keys):
    counts = {key: 0 for key in keys}
    for row in queryset.values(field).annotate(total=Count('pk')):
        counts[row[field]] = row['total']
    return counts


class AdminStatsView(AdminAccessMixin, APIView):
    """GET /api/v1/admin/stats/"""

    def get(self, request):
        tenant_id = request.user.tenant_id
        users = User.objects.filter(tenant_id=tenant_id)
        contracts = Contract.objects.filter(tenant_id=tenant_id)
        templates = ContractTemplate.objects.filter(tenant_id=tenant_id)

        return Response({
            'users': {
                'total': users.count(),
                'by_role': _counts(users, 'role', ROLES),
            },
            'contracts': {
                'total': contracts.count(),
                'by_status': _counts(contracts, 'status', [key for key, _ in Contract.STATUS_CHOICES]),
            },
            'templates': {
                'total': templates.count(),
                'by_approval_status': _counts(
                    templates, 'approval_status', [key for key, _ in ContractTemplate.APPROVAL_STATUS_CHOICES],
                ),
            },
        })
