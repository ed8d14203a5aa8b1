"""
Admin API views over users and roles
"""
import logging
import uuid

from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import User
from .permissions import HasRolePermission
from .roles import ROLE_PERMISSIONS, ROLES, is_valid_role, route_access_table
from .serializers import AdminUserUpdateSerializer, UserSerializer

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')

UUID_REGEX = '[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


class AdminAccessMixin:
    permission_classes = [HasRolePermission]
    required_permissions = ['access_admin_panel']


class AdminUserViewSet(AdminAccessMixin,
                       mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    """
    GET    /api/v1/admin/users/?role=&search=
    GET    /api/v1/admin/users/{user_id}/
    PATCH  /api/v1/admin/users/{user_id}/
    DELETE /api/v1/admin/users/{user_id}/
    """
    lookup_field = 'user_id'
    lookup_value_regex = UUID_REGEX
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def get_serializer_class(self):
        if self.action in ('update', 'partial_update'):
            return AdminUserUpdateSerializer
        return UserSerializer

    def get_queryset(self):
        queryset = User.objects.filter(tenant_id=self.request.user.tenant_id)

        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)

        search = (self.request.query_params.get('search') or '').strip()
        if search:
            queryset = queryset.filter(Q(email__icontains=search) | Q(full_name__icontains=search))

        return queryset.order_by('email')

    def update(self, request, *args, **kwargs):
        user = self.get_object()
        serializer = AdminUserUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("Admin %s updated user %s", request.user.user_id, user.user_id)
        return Response(UserSerializer(user).data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.user_id == request.user.user_id:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        audit_logger.info(
            "USER_DELETED|admin_id=%s|user_id=%s|email=%s",
            request.user.user_id, user.user_id, user.email,
        )
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AssignRoleView(AdminAccessMixin, APIView):
    """POST /api/v1/admin/assign-role/ - body {user_id, role}"""

    def post(self, request):
        user_id = request.data.get('user_id')
        role = (request.data.get('role') or '').strip()

        if not user_id or not role:
            return Response({'error': 'user_id and role are required'}, status=status.HTTP_400_BAD_REQUEST)
        if not is_valid_role(role):
            return Response(
                {'error': f"Invalid role. Must be one of: {', '.join(ROLES)}"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        if user_uuid == request.user.user_id:
            return Response({'error': 'You cannot change your own role'}, status=status.HTTP_400_BAD_REQUEST)

        target = User.objects.filter(user_id=user_uuid, tenant_id=request.user.tenant_id).first()
        if target is None:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        previous = target.role
        target.role = role
        target.save(update_fields=['role', 'updated_at'])

        audit_logger.info(
            "ROLE_ASSIGNED|admin_id=%s|user_id=%s|from=%s|to=%s",
            request.user.user_id, target.user_id, previous, role,
        )

        return Response({
            'success': True,
            'user': UserSerializer(target).data,
            'previous_role': previous,
        }, status=status.HTTP_200_OK)


class RolesView(AdminAccessMixin, APIView):
    """GET /api/v1/admin/roles/ - role -> permission map and route table"""

    def get(self, request):
        return Response({
            'roles': list(ROLES),
            'permissions': ROLE_PERMISSIONS,
            'routes': route_access_table(),
        }, status=status.HTTP_200_OK)
