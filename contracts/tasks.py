import logging
from datetime import timedelta

from celery import shared_task
from django.core.cache import cache
from django.db.models import Count
from django.utils import timezone

logger = logging.getLogger(__name__)

REMINDER_WINDOWS = {
    'daily': timedelta(days=1),
    'weekly': timedelta(days=7),
}
EXPIRED_TOKEN_RETENTION = timedelta(days=30)


def _reminder_cache_key(frequency):
    return f"approval-reminders:last-sent:{frequency}"


@shared_task
def send_pending_approval_reminders(frequency='daily'):
    """
    Remind tenant admins about templates waiting for approval.

    The last run per frequency is kept in the cache; a call inside the
    window does nothing. Returns the number of admins notified.
    """
    from authentication.models import User
    from authentication.roles import ROLE_ADMIN
    from notifications.email_service import EmailService
    from notifications.services import NotificationService

    from .models import ContractTemplate

    window = REMINDER_WINDOWS.get(frequency)
    if window is None:
        raise ValueError(f"Unknown reminder frequency: {frequency}")

    now = timezone.now()
    key = _reminder_cache_key(frequency)
    last_sent = cache.get(key)
    if last_sent is not None and now - last_sent < window:
        logger.info("Skipping %s approval reminders; last sent at %s", frequency, last_sent.isoformat())
        return 0

    pending = (
        ContractTemplate.objects.filter(approval_status='pending_approval')
        .values('tenant_id')
        .annotate(count=Count('id'))
    )

    email_service = EmailService()
    notified = 0
    for row in pending:
        admins = list(User.objects.filter(tenant_id=row['tenant_id'], role=ROLE_ADMIN, is_active=True))
        created = NotificationService.notify_users(
            row['tenant_id'],
            [admin.user_id for admin in admins],
            'approval-reminder',
            {'count': row['count']},
        )
        for admin, notification in zip(admins, created):
            email_service.send_notification_email(admin.email, notification.title, notification.message)
        notified += len(created)

    cache.set(key, now, timeout=int(window.total_seconds()) * 2)
    logger.info("Sent %s approval reminders to %d admins", frequency, notified)
    return notified


@shared_task
def expire_approval_tokens():
    """Delete unused approval tokens that expired more than 30 days ago."""
    from .models import ApprovalToken

    cutoff = timezone.now() - EXPIRED_TOKEN_RETENTION
    deleted, _ = ApprovalToken.objects.filter(used=False, expires_at__lt=cutoff).delete()
    if deleted:
        logger.info("Deleted %d stale approval tokens", deleted)
    return deleted
