"""
In-app notifications with read receipts
"""
from django.db import models
from django.db.models import Q
from django.utils import timezone
import uuid


class NotificationQuerySet(models.QuerySet):
    def active(self, now=None):
        """Rows that have not expired yet."""
        now = now or timezone.now()
        return self.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))

    def expired(self, now=None):
        now = now or timezone.now()
        return self.filter(expires_at__isnull=False, expires_at__lte=now)


class Notification(models.Model):
    """
    Notification addressed to a single user of a tenant
    """
    TYPE_CHOICES = [
        ('info', 'Info'),
        ('success', 'Success'),
        ('warning', 'Warning'),
        ('error', 'Error'),
    ]
    CATEGORY_CHOICES = [
        ('approval', 'Approval'),
        ('template', 'Template'),
        ('system', 'System'),
        ('contract', 'Contract'),
        ('general', 'General'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    user_id = models.UUIDField(db_index=True, help_text='Recipient user ID')
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='info')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='general')
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True, default='')
    read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    important = models.BooleanField(default=False)
    requires_read_receipt = models.BooleanField(default=False)
    expires_at = models.DateTimeField(null=True, blank=True)
    related_item_id = models.CharField(max_length=64, blank=True, default='')
    related_item_type = models.CharField(max_length=32, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_id', 'read'], name='ntf_user_read_idx'),
            models.Index(fields=['expires_at'], name='ntf_expires_idx'),
        ]

    def __str__(self):
        return f"{self.title} -> {self.user_id}"

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()


class ReadReceipt(models.Model):
    """
    Proof that a user opened a notification that asked for it
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    notification = models.ForeignKey(
        Notification,
        on_delete=models.CASCADE,
        related_name='receipts',
    )
    user_id = models.UUIDField()
    device_info = models.CharField(max_length=512, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification_read_receipts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['notification', 'user_id'], name='uniq_receipt_per_user'),
        ]

    def __str__(self):
        return f"{self.user_id} read {self.notification_id}"
