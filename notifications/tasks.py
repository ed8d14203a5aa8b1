import logging

from celery import shared_task

from .services import NotificationService

logger = logging.getLogger(__name__)


@shared_task
def clear_expired_notifications():
    """Delete every expired notification. Returns the number removed."""
    deleted = NotificationService.clear_expired()
    logger.info("clear_expired_notifications removed %d rows", deleted)
    return deleted
