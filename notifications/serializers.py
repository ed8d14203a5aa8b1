from rest_framework import serializers

from authentication.roles import ROLES
from .models import Notification, ReadReceipt
from .notification_templates import NOTIFICATION_TEMPLATES


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'category',
            'title',
            'message',
            'read',
            'read_at',
            'important',
            'requires_read_receipt',
            'expires_at',
            'related_item_id',
            'related_item_type',
            'created_at',
        ]
        read_only_fields = fields


class ReadReceiptSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReadReceipt
        fields = ['id', 'notification', 'user_id', 'device_info', 'created_at']
        read_only_fields = fields


class AdminNotificationSerializer(serializers.Serializer):
    """Templated (`template_id` + `params`) or free-form (`title` + `message`) send"""
    template_id = serializers.ChoiceField(choices=sorted(NOTIFICATION_TEMPLATES), required=False)
    params = serializers.DictField(required=False, default=dict)
    title = serializers.CharField(max_length=255, required=False)
    message = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES, required=False)
    category = serializers.ChoiceField(choices=Notification.CATEGORY_CHOICES, required=False)
    important = serializers.BooleanField(required=False)
    requires_read_receipt = serializers.BooleanField(required=False)
    expires_at = serializers.DateTimeField(required=False)
    user_id = serializers.UUIDField(required=False)
    role = serializers.ChoiceField(choices=ROLES, required=False)

    def validate(self, attrs):
        if not attrs.get('user_id') and not attrs.get('role'):
            raise serializers.ValidationError('Either user_id or role is required')
        if not attrs.get('template_id') and not attrs.get('title'):
            raise serializers.ValidationError('Either template_id or title is required')
        return attrs
