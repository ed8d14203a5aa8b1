"""
Bearer JWT Authentication for Django REST Framework
"""
import logging

import jwt
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import authentication
from rest_framework import exceptions

from .models import User
from .roles import ROLE_USER, is_valid_role

logger = logging.getLogger(__name__)


def resolve_role(user, claims=None):
    """Role from the user row, else the token's `role` claim, else `user`."""
    role = getattr(user, 'role', None)
    if is_valid_role(role):
        return role
    claimed = (claims or {}).get('role')
    if is_valid_role(claimed):
        return claimed
    return ROLE_USER


class BearerJWTAuthentication(authentication.BaseAuthentication):
    """
    Validates `Authorization: Bearer <jwt>` tokens issued by the login view
    """

    keyword = 'bearer'

    def authenticate(self, request):
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')

        if not auth_header:
            return None

        # Extract token from "Bearer <token>"
        parts = auth_header.split()
        if parts[0].lower() != self.keyword:
            return None

        if len(parts) == 1:
            raise exceptions.AuthenticationFailed('Invalid token header. No credentials provided.')
        elif len(parts) > 2:
            raise exceptions.AuthenticationFailed('Invalid token header. Token string should not contain spaces.')

        return self.authenticate_token(request, parts[1])

    def authenticate_token(self, request, token):
        jwt_settings = getattr(settings, 'SIMPLE_JWT', {})
        signing_key = jwt_settings.get('SIGNING_KEY') or settings.SECRET_KEY
        algorithm = jwt_settings.get('ALGORITHM', 'HS256')
        claim = jwt_settings.get('USER_ID_CLAIM', 'user_id')

        try:
            payload = jwt.decode(token, signing_key, algorithms=[algorithm])
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected bearer token: %s", e)
            raise exceptions.AuthenticationFailed('Invalid token')

        if payload.get('token_type', 'access') != 'access':
            raise exceptions.AuthenticationFailed('Invalid token type')

        user_id = payload.get(claim)
        if not user_id:
            raise exceptions.AuthenticationFailed('Invalid token payload')

        try:
            user = User.objects.get(user_id=user_id)
        except (User.DoesNotExist, ValueError, DjangoValidationError):
            raise exceptions.AuthenticationFailed('User not found')

        if not user.is_active:
            raise exceptions.AuthenticationFailed('User inactive or deleted')

        user.role = resolve_role(user, payload)
        # Middleware runs before DRF authenticates; expose the tenant here.
        request._request.tenant_id = user.tenant_id
        return (user, payload)

    def authenticate_header(self, request):
        return 'Bearer realm="api"'
