"""
Email Notification Service

Sends approval links and notification mirrors through Django's mail backend.
Every method returns True when the message was handed to the backend.
"""
import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import format_html, strip_tags

logger = logging.getLogger(__name__)


class EmailService:
    """
    Service for sending email notifications
    """

    def __init__(self):
        self.sender_email = getattr(settings, 'DEFAULT_FROM_EMAIL', '') or 'noreply@example.com'
        self.app_url = (getattr(settings, 'FRONTEND_BASE_URL', '') or 'http://localhost:3000').rstrip('/')

    def send_approval_link_email(
        self,
        recipient_email: str,
        party_name: str,
        reference_number: str,
        approval_url: str,
        expires_at=None,
    ) -> bool:
        """
        Send a single-use contract approval link to one party

        Args:
            recipient_email: Party email
            party_name: Name shown in the greeting
            reference_number: Contract reference number
            approval_url: Absolute approval link
            expires_at: Link expiry (datetime), shown when given

        Returns:
            True if email sent successfully
        """
        subject = f"Approval requested: contract {reference_number}"
        expiry_line = ''
        if expires_at is not None:
            expiry_line = format_html(
                '<p style="color:#666;">This link expires on {}.</p>',
                expires_at.strftime('%d/%m/%Y %H:%M UTC'),
            )
        html_body = format_html(
            '<div style="font-family:Arial,sans-serif;max-width:600px;">'
            '<h2>Contract approval requested</h2>'
            '<p>Hello {},</p>'
            '<p>You have been asked to review and approve contract <strong>{}</strong>.</p>'
            '<p><a href="{}" style="background:#2563eb;color:#fff;padding:10px 18px;'
            'border-radius:6px;text-decoration:none;">Review and approve</a></p>'
            '{}'
            '<p dir="rtl" lang="ar">يرجى مراجعة العقد والموافقة عليه عبر الرابط أعلاه.</p>'
            '</div>',
            party_name or recipient_email,
            reference_number,
            approval_url,
            expiry_line,
        )
        return self._send_email(recipient_email, subject, html_body, notification_type='approval_link')

    def send_notification_email(self, recipient_email: str, title: str, message: str) -> bool:
        """Mirror an in-app notification by email."""
        html_body = format_html(
            '<div style="font-family:Arial,sans-serif;max-width:600px;">'
            '<h2>{}</h2><p>{}</p>'
            '<p><a href="{}/notifications">Open notifications</a></p>'
            '</div>',
            title,
            message,
            self.app_url,
        )
        return self._send_email(recipient_email, title, html_body, notification_type='notification')

    def _send_email(self, recipient_email: str, subject: str, html_body: str, notification_type: str = 'general') -> bool:
        if not recipient_email:
            return False
        try:
            send_mail(
                subject,
                strip_tags(html_body),
                self.sender_email,
                [recipient_email],
                html_message=str(html_body),
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send %s email to %s: %s", notification_type, recipient_email, e)
            return False
        logger.info("Email sent successfully to %s (%s)", recipient_email, notification_type)
        return True
