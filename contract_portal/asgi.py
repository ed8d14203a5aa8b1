"""
ASGI config for the contract portal.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'contract_portal.settings')

application = get_asgi_application()
