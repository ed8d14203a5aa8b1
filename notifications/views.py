"""
Notification inbox endpoints and the admin send endpoint
"""
import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.models import User
from authentication.permissions import IsAdminRole
from .models import Notification
from .notification_templates import NOTIFICATION_TEMPLATES, templates_by_category
from .serializers import AdminNotificationSerializer, NotificationSerializer, ReadReceiptSerializer
from .services import NotificationService

logger = logging.getLogger(__name__)

TRUTHY = ('1', 'true', 'yes', 'on')


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    The caller's own notifications. Expired rows are hidden.
    """
    serializer_class = NotificationSerializer

    def get_queryset(self):
        user = self.request.user
        qs = Notification.objects.active().filter(tenant_id=user.tenant_id, user_id=user.user_id)
        if self.action == 'list':
            if str(self.request.query_params.get('unread', '')).lower() in TRUTHY:
                qs = qs.filter(read=False)
            if str(self.request.query_params.get('important', '')).lower() in TRUTHY:
                qs = qs.filter(important=True)
        return qs

    @action(detail=True, methods=['post'], url_path='read')
    def read(self, request, pk=None):
        notification = self.get_object()
        receipt = NotificationService.mark_read(
            notification,
            request.user.user_id,
            device_info=request.META.get('HTTP_USER_AGENT', ''),
        )
        return Response({
            'success': True,
            'notification': NotificationSerializer(notification).data,
            'receipt': ReadReceiptSerializer(receipt).data if receipt else None,
        })

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        updated = NotificationService.mark_all_read(request.user.user_id)
        return Response({'success': True, 'updated': updated})

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        count = self.get_queryset().filter(read=False).count()
        return Response({'unread_count': count})

    @action(detail=True, methods=['get'], url_path='receipts')
    def receipts(self, request, pk=None):
        notification = self.get_object()
        return Response(ReadReceiptSerializer(notification.receipts.all(), many=True).data)

    @action(detail=False, methods=['post'], url_path='clear-expired')
    def clear_expired(self, request):
        deleted = NotificationService.clear_expired(user_id=request.user.user_id)
        return Response({'success': True, 'deleted': deleted})

    @action(detail=False, methods=['get'], url_path='templates')
    def templates(self, request):
        category = (request.query_params.get('category') or '').strip()
        templates = templates_by_category(category) if category else NOTIFICATION_TEMPLATES
        return Response([{'id': key, **template} for key, template in templates.items()])


class AdminNotificationView(APIView):
    """
    POST /api/v1/admin/notifications/

    Send a notification to one user or to every user with a role.
    """
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = AdminNotificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        tenant_id = request.user.tenant_id

        recipients = User.objects.filter(tenant_id=tenant_id, is_active=True)
        if data.get('user_id'):
            recipients = recipients.filter(user_id=data['user_id'])
        else:
            recipients = recipients.filter(role=data['role'])
        user_ids = list(recipients.values_list('user_id', flat=True))
        if data.get('user_id') and not user_ids:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        overrides = {
            key: data[key]
            for key in ('title', 'message', 'type', 'category', 'important', 'requires_read_receipt', 'expires_at')
            if key in data
        }
        if data.get('template_id'):
            created = NotificationService.notify_users(
                tenant_id, user_ids, data['template_id'], data.get('params'), **overrides
            )
        else:
            title = overrides.pop('title')
            message = overrides.pop('message', '')
            created = NotificationService.create_custom(tenant_id, user_ids, title=title, message=message, **overrides)

        logger.info(
            "Admin %s sent %d notification(s) (%s)",
            request.user.user_id, len(created), data.get('template_id') or 'custom',
        )
        return Response({'success': True, 'count': len(created)}, status=status.HTTP_201_CREATED)
