"""
Project-wide DRF exception handler.

Every API error leaves the service as a JSON body with an `error` key so
clients can show a single message. Views that speak the edge envelope set
`error_envelope = True` and receive `{success: false, error}` instead.
"""
from __future__ import annotations

import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    view = context.get('view')

    if response is None:
        # Unhandled errors are logged here and hidden from the client.
        logger.exception('Unhandled API error in %s', type(view).__name__ if view else 'unknown view')
        response = Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        data = response.data
    elif isinstance(exc, exceptions.ValidationError):
        data = {
            'error': _first_message(exc.detail) or 'Invalid request',
            'details': response.data,
        }
    elif response.status_code == status.HTTP_401_UNAUTHORIZED and getattr(view, 'unauthenticated_error', None):
        data = {'error': view.unauthenticated_error}
    else:
        detail = response.data.get('detail') if isinstance(response.data, dict) else response.data
        data = {'error': _first_message(detail) or 'Request failed'}

    if getattr(view, 'error_envelope', False):
        data = {'success': False, **data}

    response.data = data
    return response
