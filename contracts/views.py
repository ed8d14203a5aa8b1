"""
Contract API views
"""
import logging

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db.models import Q
from django.http import FileResponse, HttpResponse
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasRolePermission, role_of
from authentication.roles import ROLE_ADMIN, ROLE_PROMOTER, has_permission

from .layout import normalize_layout
from .models import Contract
from .pdf import generate_contract_pdf
from .renderer import LANGUAGES, render_contract_html
from .serializers import (
    ApprovalRequestSerializer,
    ApprovalTokenSerializer,
    ContractActivitySerializer,
    ContractDetailSerializer,
    ContractListSerializer,
    ContractSearchSerializer,
    ContractWriteSerializer,
    PdfOptionsSerializer,
)
from .services import ApprovalService, ContractService, approval_link, log_activity

logger = logging.getLogger(__name__)


def pdf_storage_path(contract) -> str:
    return f"contracts/{contract.tenant_id}/{contract.id}.pdf"


class ContractViewSet(viewsets.ModelViewSet):
    """
    API endpoint for bilingual contracts.

    Admins work across the tenant. Everyone else only sees contracts they
    own; a contract outside that set answers 404 on read. Mutating actions
    resolve the contract tenant-wide and answer 403 when the caller may not
    change it.
    """
    permission_classes = [HasRolePermission]
    required_permissions_by_action = {
        'create': ['create_contracts'],
    }
    throttle_scope = None
    http_method_names = ['get', 'post', 'put', 'patch', 'delete', 'head', 'options']

    MUTATING_ACTIONS = ('update', 'partial_update', 'destroy', 'generate_pdf', 'request_approval')

    def _is_admin(self) -> bool:
        return role_of(self.request.user) == ROLE_ADMIN

    def get_serializer_class(self):
        if self.action == 'list':
            return ContractListSerializer
        if self.action in ('create', 'update', 'partial_update'):
            return ContractWriteSerializer
        return ContractDetailSerializer

    def get_queryset(self):
        user = self.request.user
        qs = Contract.objects.filter(tenant_id=user.tenant_id)

        if not self._is_admin() and self.action not in self.MUTATING_ACTIONS:
            qs = qs.filter(created_by=user.user_id)

        if self.action == 'list':
            search = (self.request.query_params.get('search') or '').strip()
            if search:
                qs = qs.filter(
                    Q(first_party_name_en__icontains=search)
                    | Q(first_party_name_ar__icontains=search)
                    | Q(second_party_name_en__icontains=search)
                    | Q(second_party_name_ar__icontains=search)
                    | Q(reference_number__icontains=search)
                )
            status_filter = (self.request.query_params.get('status') or '').strip()
            if status_filter:
                qs = qs.filter(status=status_filter)
            return qs.defer('contract_layout', 'contract_template', 'json_layout', 'contract_data')

        return qs

    def _can_edit(self, contract) -> bool:
        role = role_of(self.request.user)
        if has_permission(role, 'edit_contracts'):
            return True
        return has_permission(role, 'edit_own_contracts') and contract.is_owned_by(self.request.user)

    def _can_delete(self, contract) -> bool:
        role = role_of(self.request.user)
        if has_permission(role, 'delete_contracts'):
            return True
        return role != ROLE_PROMOTER and contract.is_owned_by(self.request.user)

    def _is_owner_or_admin(self, contract) -> bool:
        return self._is_admin() or contract.is_owned_by(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contract = ContractService.create_contract(request.user, serializer.validated_data)
        return Response(ContractDetailSerializer(contract).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        contract = self.get_object()
        if not self._can_edit(contract):
            return Response(
                {'error': 'You do not have permission to edit this contract.'},
                status=status.HTTP_403_FORBIDDEN,
            )
        serializer = self.get_serializer(contract, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        contract = ContractService.update_contract(contract, request.user, serializer.validated_data)
        return Response(ContractDetailSerializer(contract).data)

    def destroy(self, request, *args, **kwargs):
        contract = self.get_object()
        if not self._can_delete(contract):
            return Response(
                {'error': 'You do not have permission to delete this contract.'},
                status=status.HTTP_403_FORBIDDEN,
            )
        if not self._is_admin() and contract.status == 'approved':
            return Response(
                {'error': 'Approved contracts cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if default_storage.exists(pdf_storage_path(contract)):
            default_storage.delete(pdf_storage_path(contract))
        ContractService.delete_contract(contract, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='search')
    def search(self, request):
        """
        POST /contracts/search/

        {query?, limit (1..100, default 10), offset, filters?{status, contract_type,
        start_date_from, end_date_to}} -> {contracts, total, limit, offset}
        """
        serializer = ContractSearchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        qs = Contract.objects.filter(tenant_id=request.user.tenant_id)
        if not self._is_admin():
            qs = qs.filter(created_by=request.user.user_id)
        qs = ContractService.search(qs, params.get('query', '').strip(), params.get('filters'))

        limit, offset = params['limit'], params['offset']
        total = qs.count()
        page = qs.order_by('-created_at')[offset:offset + limit]
        return Response({
            'contracts': ContractListSerializer(page, many=True).data,
            'total': total,
            'limit': limit,
            'offset': offset,
        })

    @action(detail=True, methods=['get'], url_path='layout')
    def layout(self, request, pk=None):
        contract = self.get_object()
        return Response(normalize_layout(contract))

    @action(detail=True, methods=['get'], url_path='html')
    def html(self, request, pk=None):
        contract = self.get_object()
        language = request.query_params.get('language') or contract.language
        if language not in LANGUAGES:
            return Response({'error': 'language must be one of en, ar, both'}, status=status.HTTP_400_BAD_REQUEST)
        return HttpResponse(render_contract_html(contract, language), content_type='text/html; charset=utf-8')

    @action(detail=True, methods=['post'], url_path='generate-pdf', throttle_scope='pdf')
    def generate_pdf(self, request, pk=None):
        contract = self.get_object()
        if not self._is_owner_or_admin(contract):
            return Response(
                {'error': 'Only the contract owner or an admin can generate the PDF.'},
                status=status.HTTP_403_FORBIDDEN,
            )
        options = PdfOptionsSerializer(data=request.data)
        options.is_valid(raise_exception=True)
        opts = options.validated_data

        pdf_bytes = generate_contract_pdf(
            normalize_layout(contract),
            language=opts.get('language') or contract.language,
            paper_size=opts['paper_size'],
            orientation=opts['orientation'],
            include_signatures=opts['include_signatures'],
            include_watermark=opts['include_watermark'],
            reference_number=contract.reference_number,
        )

        path = pdf_storage_path(contract)
        if default_storage.exists(path):
            default_storage.delete(path)
        default_storage.save(path, ContentFile(pdf_bytes))

        contract.pdf_url = f"{settings.BACKEND_URL}/api/v1/contracts/{contract.id}/download-pdf/"
        contract.pdf_generated_at = timezone.now()
        contract.save(update_fields=['pdf_url', 'pdf_generated_at', 'updated_at'])
        log_activity(contract, 'pdf_generated', request.user, **opts)
        logger.info("Generated PDF for contract %s (%d bytes)", contract.id, len(pdf_bytes))

        return Response({'success': True, 'pdf_url': contract.pdf_url})

    @action(detail=True, methods=['get'], url_path='download-pdf', throttle_scope='pdf')
    def download_pdf(self, request, pk=None):
        contract = self.get_object()
        filename = f"{contract.reference_number or contract.id}.pdf"

        path = pdf_storage_path(contract)
        if default_storage.exists(path):
            return FileResponse(
                default_storage.open(path, 'rb'),
                as_attachment=True,
                filename=filename,
                content_type='application/pdf',
            )

        pdf_bytes = generate_contract_pdf(
            normalize_layout(contract),
            language=contract.language,
            reference_number=contract.reference_number,
        )
        response = HttpResponse(pdf_bytes, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response

    @action(detail=True, methods=['post'], url_path='request-approval')
    def request_approval(self, request, pk=None):
        contract = self.get_object()
        if not self._is_owner_or_admin(contract):
            return Response(
                {'error': 'Only the contract owner or an admin can request approval.'},
                status=status.HTTP_403_FORBIDDEN,
            )
        serializer = ApprovalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tokens = ApprovalService.request_approval(contract, request.user, serializer.validated_data.get('parties'))
        return Response({
            'success': True,
            'contract_id': str(contract.id),
            'status': contract.status,
            'tokens': [
                {**ApprovalTokenSerializer(token).data, 'approval_url': approval_link(token.token)}
                for token in tokens
            ],
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='activity')
    def activity(self, request, pk=None):
        contract = self.get_object()
        return Response(ContractActivitySerializer(contract.activities.all(), many=True).data)
