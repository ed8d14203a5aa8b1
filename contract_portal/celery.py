"""
Celery configuration for the contract portal
Handles background work: approval reminders, notification and token cleanup
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'contract_portal.settings')

app = Celery('contract_portal')

# Load config from Django settings with CELERY_ prefix
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()
