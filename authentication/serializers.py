from rest_framework import serializers

from .models import User
from .roles import permissions_for


class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'user_id',
            'email',
            'full_name',
            'role',
            'tenant_id',
            'is_active',
            'date_joined',
            'permissions',
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return permissions_for(obj.role)


class AdminUserUpdateSerializer(serializers.ModelSerializer):
    """Fields an admin may edit directly; roles change through assign-role."""

    class Meta:
        model = User
        fields = ['full_name', 'is_active']
