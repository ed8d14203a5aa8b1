"""
Predefined notification templates.

Messages use `{param}` placeholders. Only the params that are passed are
substituted; unknown placeholders stay in the text as-is.
"""
from datetime import timedelta

from django.utils import timezone


NOTIFICATION_TEMPLATES = {
    # Approval
    'template-submitted': {
        'name': 'Template Submitted',
        'description': 'Notification when a template is submitted for approval',
        'category': 'approval',
        'type': 'info',
        'message': 'Template "{template_name}" has been submitted for approval.',
        'important': True,
        'requires_read_receipt': True,
        'expiration_hours': 72,
        'parameters': ['template_name', 'submitted_by'],
    },
    'template-approved': {
        'name': 'Template Approved',
        'description': 'Notification when a template is approved',
        'category': 'approval',
        'type': 'success',
        'message': 'Template "{template_name}" has been approved.',
        'important': True,
        'requires_read_receipt': True,
        'expiration_hours': None,
        'parameters': ['template_name', 'approved_by'],
    },
    'template-rejected': {
        'name': 'Template Rejected',
        'description': 'Notification when a template is rejected',
        'category': 'approval',
        'type': 'warning',
        'message': 'Template "{template_name}" has been rejected.',
        'important': True,
        'requires_read_receipt': True,
        'expiration_hours': None,
        'parameters': ['template_name', 'rejected_by', 'rejection_reason'],
    },
    'approval-reminder': {
        'name': 'Approval Reminder',
        'description': 'Reminder for pending template approvals',
        'category': 'approval',
        'type': 'info',
        'message': 'Reminder: {count} template(s) pending your approval.',
        'important': True,
        'requires_read_receipt': False,
        'expiration_hours': 24,
        'parameters': ['count'],
    },
    # Contract
    'contract-created': {
        'name': 'Contract Created',
        'description': 'Notification when a contract is created',
        'category': 'contract',
        'type': 'success',
        'message': 'Contract #{reference_number} has been created successfully.',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['reference_number', 'contract_type'],
    },
    'contract-updated': {
        'name': 'Contract Updated',
        'description': 'Notification when a contract is updated',
        'category': 'contract',
        'type': 'info',
        'message': 'Contract #{reference_number} has been updated.',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['reference_number', 'updated_by'],
    },
    'contract-expiring': {
        'name': 'Contract Expiring',
        'description': 'Notification when a contract is about to expire',
        'category': 'contract',
        'type': 'warning',
        'message': 'Contract #{reference_number} will expire in {days_remaining} days.',
        'important': True,
        'requires_read_receipt': True,
        'expiration_hours': 168,
        'parameters': ['reference_number', 'days_remaining', 'expiry_date'],
    },
    # System
    'system-maintenance': {
        'name': 'System Maintenance',
        'description': 'Notification for scheduled system maintenance',
        'category': 'system',
        'type': 'info',
        'message': 'System maintenance scheduled for {maintenance_date}. Expected downtime: {downtime_duration}.',
        'important': True,
        'requires_read_receipt': False,
        'expiration_hours': 48,
        'parameters': ['maintenance_date', 'downtime_duration', 'maintenance_details'],
    },
    'system-error': {
        'name': 'System Error',
        'description': 'Notification for system errors',
        'category': 'system',
        'type': 'error',
        'message': 'System error: {error_message}',
        'important': True,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['error_message', 'error_code', 'error_details'],
    },
    # General
    'general-info': {
        'name': 'General Information',
        'description': 'General information notification',
        'category': 'general',
        'type': 'info',
        'message': '{message}',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['message', 'title'],
    },
    'general-success': {
        'name': 'General Success',
        'description': 'General success notification',
        'category': 'general',
        'type': 'success',
        'message': '{message}',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['message', 'title'],
    },
    'general-warning': {
        'name': 'General Warning',
        'description': 'General warning notification',
        'category': 'general',
        'type': 'warning',
        'message': '{message}',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['message', 'title'],
    },
    'general-error': {
        'name': 'General Error',
        'description': 'General error notification',
        'category': 'general',
        'type': 'error',
        'message': '{message}',
        'important': False,
        'requires_read_receipt': False,
        'expiration_hours': None,
        'parameters': ['message', 'title'],
    },
}

# Keys a caller may override on top of the template defaults
OVERRIDABLE_FIELDS = (
    'title',
    'message',
    'type',
    'category',
    'important',
    'requires_read_receipt',
    'expires_at',
    'related_item_id',
    'related_item_type',
)


def get_template(template_id):
    """Template definition by id; raises KeyError for unknown ids."""
    return NOTIFICATION_TEMPLATES[template_id]


def templates_by_category(category):
    return {key: tpl for key, tpl in NOTIFICATION_TEMPLATES.items() if tpl['category'] == category}


def render_message(message_template, params):
    message = message_template
    for key, value in (params or {}).items():
        message = message.replace('{%s}' % key, '' if value is None else str(value))
    return message


def create_notification_from_template(template_id, params=None, **overrides):
    """
    Field values for a Notification built from a predefined template.

    Overrides win over the template defaults. The expiry is computed from
    the template's `expiration_hours` unless `expires_at` is overridden.
    """
    template = get_template(template_id)
    params = params or {}

    expires_at = None
    if template['expiration_hours']:
        expires_at = timezone.now() + timedelta(hours=template['expiration_hours'])

    fields = {
        'title': str(params.get('title') or template['name']),
        'message': render_message(template['message'], params),
        'type': template['type'],
        'category': template['category'],
        'important': template['important'],
        'requires_read_receipt': template['requires_read_receipt'],
        'expires_at': expires_at,
        'related_item_id': '',
        'related_item_type': '',
    }
    for key in OVERRIDABLE_FIELDS:
        if key in overrides and overrides[key] is not None:
            fields[key] = overrides[key]
    return fields
