"""
Notification creation, fan-out and read tracking
"""
import logging

from django.db import transaction
from django.utils import timezone

from .models import Notification, ReadReceipt
from .notification_templates import create_notification_from_template

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def notify(tenant_id, user_id, template_id, params=None, **overrides) -> Notification:
        """Create one notification from a predefined template. Unknown ids raise KeyError."""
        fields = create_notification_from_template(template_id, params, **overrides)
        notification = Notification.objects.create(tenant_id=tenant_id, user_id=user_id, **fields)
        logger.info("Notification %s (%s) created for user %s", notification.id, template_id, user_id)
        return notification

    @staticmethod
    def notify_users(tenant_id, user_ids, template_id, params=None, **overrides):
        fields = create_notification_from_template(template_id, params, **overrides)
        rows = [Notification(tenant_id=tenant_id, user_id=uid, **fields) for uid in user_ids]
        return Notification.objects.bulk_create(rows)

    @staticmethod
    def notify_role(tenant_id, role, template_id, params=None, **overrides):
        """Notify every active user of `role` in the tenant."""
        from authentication.models import User

        user_ids = list(
            User.objects.filter(tenant_id=tenant_id, role=role, is_active=True).values_list('user_id', flat=True)
        )
        if not user_ids:
            return []
        return NotificationService.notify_users(tenant_id, user_ids, template_id, params, **overrides)

    @staticmethod
    def create_custom(tenant_id, user_ids, *, title, message='', **fields):
        rows = [
            Notification(tenant_id=tenant_id, user_id=uid, title=title, message=message, **fields)
            for uid in user_ids
        ]
        return Notification.objects.bulk_create(rows)

    @staticmethod
    @transaction.atomic
    def mark_read(notification: Notification, user_id, device_info='') -> ReadReceipt | None:
        """
        Flag the notification read and, when it asks for one, record a
        read receipt. A second read keeps the first receipt.
        """
        if not notification.read:
            notification.read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['read', 'read_at'])

        if not notification.requires_read_receipt:
            return None

        receipt, _ = ReadReceipt.objects.get_or_create(
            notification=notification,
            user_id=user_id,
            defaults={'device_info': (device_info or '')[:512]},
        )
        return receipt

    @staticmethod
    def mark_all_read(user_id) -> int:
        return Notification.objects.active().filter(user_id=user_id, read=False).update(
            read=True, read_at=timezone.now(),
        )

    @staticmethod
    def clear_expired(user_id=None) -> int:
        qs = Notification.objects.expired()
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        _, per_model = qs.delete()
        deleted = per_model.get(Notification._meta.label, 0)
        if deleted:
            logger.info("Deleted %d expired notification rows", deleted)
        return deleted
