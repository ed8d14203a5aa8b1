"""
Contract template API: CRUD, approval workflow and version history
"""
import json
import logging
import uuid

from django.db.models import Q
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasRolePermission, role_of
from authentication.roles import ROLE_ADMIN

from .models import TEMPLATE_VERSIONED_FIELDS, ContractTemplate
from .serializers import (
    ContractTemplateSerializer,
    TemplateDecisionSerializer,
    TemplateImportSerializer,
    TemplateRestoreSerializer,
    TemplateVersionSerializer,
)
from .services import TemplateService, TemplateTransitionError
from .template_library import PREDEFINED_TEMPLATES

logger = logging.getLogger(__name__)


def _parse_uuid(value):
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class ContractTemplateViewSet(viewsets.ModelViewSet):
    """
    Admins see every template of the tenant; other users see approved,
    published templates plus their own.
    """
    serializer_class = ContractTemplateSerializer
    permission_classes = [HasRolePermission]
    required_permissions_by_action = {
        'create': ['create_contracts'],
        'import_template': ['create_contracts'],
        'approve': ['access_admin_panel'],
        'reject': ['access_admin_panel'],
        'seed_predefined': ['access_admin_panel'],
    }

    def _is_admin(self) -> bool:
        return role_of(self.request.user) == ROLE_ADMIN

    def _is_owner_or_admin(self, template) -> bool:
        return self._is_admin() or str(template.created_by) == str(self.request.user.user_id)

    def _forbidden(self, message='Only the template owner or an admin can do this.'):
        return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)

    def get_queryset(self):
        user = self.request.user
        qs = ContractTemplate.objects.filter(tenant_id=user.tenant_id)
        if not self._is_admin():
            qs = qs.filter(Q(approval_status='approved', is_published=True) | Q(created_by=user.user_id))

        if self.action == 'list':
            category = (self.request.query_params.get('category') or '').strip()
            if category:
                qs = qs.filter(category=category)
            search = (self.request.query_params.get('search') or '').strip()
            if search:
                qs = qs.filter(
                    Q(name__icontains=search)
                    | Q(description__icontains=search)
                    | Q(responsibilities__icontains=search)
                )
        return qs

    def perform_create(self, serializer):
        self._save_draft(serializer)

    def _save_draft(self, serializer):
        user = self.request.user
        serializer.validated_data.pop('change_notes', None)
        return serializer.save(
            tenant_id=user.tenant_id,
            created_by=user.user_id,
            last_modified_by=user.user_id,
            approval_status='draft',
            version=1,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        template = self.get_object()
        if not self._is_owner_or_admin(template):
            return self._forbidden()
        serializer = self.get_serializer(template, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        change_notes = data.pop('change_notes', '')
        template = TemplateService.update_template(template, request.user, data, change_notes)
        return Response(self.get_serializer(template).data)

    def destroy(self, request, *args, **kwargs):
        template = self.get_object()
        if not self._is_owner_or_admin(template):
            return self._forbidden()
        logger.info("Template %s deleted by %s", template.id, request.user.user_id)
        template.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='submit')
    def submit(self, request, pk=None):
        template = self.get_object()
        if not self._is_owner_or_admin(template):
            return self._forbidden()
        try:
            template = TemplateService.submit(template, request.user)
        except TemplateTransitionError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(template).data)

    @action(detail=True, methods=['post'], url_path='approve')
    def approve(self, request, pk=None):
        template = self.get_object()
        decision = TemplateDecisionSerializer(data=request.data)
        decision.is_valid(raise_exception=True)
        try:
            template = TemplateService.approve(template, request.user, decision.validated_data['comments'])
        except TemplateTransitionError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(template).data)

    @action(detail=True, methods=['post'], url_path='reject')
    def reject(self, request, pk=None):
        template = self.get_object()
        decision = TemplateDecisionSerializer(data=request.data)
        decision.is_valid(raise_exception=True)
        try:
            template = TemplateService.reject(template, request.user, decision.validated_data['comments'])
        except TemplateTransitionError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(template).data)

    @action(detail=True, methods=['get'], url_path='versions')
    def versions(self, request, pk=None):
        template = self.get_object()
        return Response(TemplateVersionSerializer(template.versions.all(), many=True).data)

    @action(detail=True, methods=['post'], url_path='restore')
    def restore(self, request, pk=None):
        template = self.get_object()
        if not self._is_owner_or_admin(template):
            return self._forbidden()
        serializer = TemplateRestoreSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        version = template.versions.filter(id=serializer.validated_data['version_id']).first()
        if version is None:
            return Response({'error': 'Version not found'}, status=status.HTTP_404_NOT_FOUND)
        template = TemplateService.restore(template, version, request.user)
        return Response(self.get_serializer(template).data)

    @action(detail=True, methods=['get'], url_path='compare')
    def compare(self, request, pk=None):
        """
        GET /contract-templates/{id}/compare/?a=<version_id>&b=<version_id|current>

        `b` defaults to the live template.
        """
        template = self.get_object()
        a_param = request.query_params.get('a')
        b_param = request.query_params.get('b') or 'current'
        if not a_param:
            return Response({'error': 'Query parameter a is required'}, status=status.HTTP_400_BAD_REQUEST)

        def resolve(value):
            if value == 'current':
                return {'version': template.version, **template.snapshot()}
            version_id = _parse_uuid(value)
            version = template.versions.filter(id=version_id).first() if version_id else None
            if version is None:
                return None
            return {'version': version.version, **version.snapshot()}

        before, after = resolve(a_param), resolve(b_param)
        if before is None or after is None:
            return Response({'error': 'Version not found'}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            'a': {'id': a_param, 'version': before['version']},
            'b': {'id': b_param, 'version': after['version']},
            'fields': TemplateService.compare(before, after),
        })

    @action(detail=True, methods=['get'], url_path='export')
    def export(self, request, pk=None):
        """GET /contract-templates/{id}/export/ - shareable JSON document"""
        template = self.get_object()
        return Response({
            'source_id': str(template.id),
            'version': template.version,
            'exported_at': timezone.now().isoformat(),
            'template': template.snapshot(),
        })

    @action(detail=False, methods=['post'], url_path='import')
    def import_template(self, request):
        """
        POST /contract-templates/import/

        Accepts the template fields directly, an export document
        (`{"template": {...}}`) or pasted JSON text (`{"template": "..."}`).
        The result is a new draft owned by the caller.
        """
        payload = request.data
        if isinstance(payload, dict) and 'template' in payload:
            payload = payload['template']
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                return Response({'error': 'Invalid template JSON'}, status=status.HTTP_400_BAD_REQUEST)
        if not isinstance(payload, dict):
            return Response({'error': 'Invalid template format'}, status=status.HTTP_400_BAD_REQUEST)

        fields = {key: payload[key] for key in TEMPLATE_VERSIONED_FIELDS if key in payload}
        serializer = TemplateImportSerializer(data=fields)
        serializer.is_valid(raise_exception=True)
        template = self._save_draft(serializer)
        logger.info("Template %s imported by %s", template.id, request.user.user_id)
        return Response(ContractTemplateSerializer(template).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='predefined')
    def predefined(self, request):
        return Response(PREDEFINED_TEMPLATES)

    @action(detail=False, methods=['post'], url_path='seed-predefined')
    def seed_predefined(self, request):
        created = TemplateService.seed_predefined(request.user.tenant_id, request.user.user_id)
        return Response({
            'success': True,
            'created': len(created),
            'templates': self.get_serializer(created, many=True).data,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)
