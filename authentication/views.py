"""
Authentication views: login, registration, session and route access
"""
import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from .captcha import CaptchaService
from .models import User
from .roles import SELF_SERVICE_ROLES, ROLE_USER, can_access_route
from .serializers import UserSerializer

logger = logging.getLogger(__name__)


def issue_tokens(user):
    """Access/refresh pair with the claims the frontend reads without a DB lookup."""
    refresh = RefreshToken.for_user(user)
    refresh['email'] = user.email
    refresh['tenant_id'] = str(user.tenant_id)
    refresh['role'] = user.role
    access = refresh.access_token
    access['email'] = user.email
    access['tenant_id'] = str(user.tenant_id)
    access['role'] = user.role
    return {
        'access': str(access),
        'refresh': str(refresh),
        'user': UserSerializer(user).data,
    }


def client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class TokenView(APIView):
    """POST /api/auth/login/ - Authenticate user and generate JWT token"""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = 'auth'

    def post(self, request):
        email = (request.data.get('email') or '').strip().lower()
        password = request.data.get('password') or ''

        if not email or not password:
            return Response({'error': 'Email and password required'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            user = User.objects.get(email=email)
        except User.DoesNotExist:
            return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

        if not user.check_password(password):
            return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

        if not user.is_active:
            return Response({'error': 'Account is disabled'}, status=status.HTTP_403_FORBIDDEN)

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        logger.info("User %s logged in", user.user_id)

        return Response(issue_tokens(user), status=status.HTTP_200_OK)


class RegisterView(APIView):
    """POST /api/auth/register/ - Register new user"""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = 'auth'

    def post(self, request):
        email = (request.data.get('email') or '').strip().lower()
        password = request.data.get('password') or ''
        full_name = (request.data.get('full_name') or '').strip()
        role = (request.data.get('role') or ROLE_USER).strip().lower()
        captcha_token = request.data.get('captcha_token') or ''

        if not email or not password:
            return Response({'error': 'Email and password required'}, status=status.HTTP_400_BAD_REQUEST)
        if len(password) < 6:
            return Response({'error': 'Password minimum 6 chars'}, status=status.HTTP_400_BAD_REQUEST)
        if role not in SELF_SERVICE_ROLES:
            return Response({'error': 'Invalid role'}, status=status.HTTP_400_BAD_REQUEST)
        if not CaptchaService.verify(captcha_token, client_ip(request)):
            return Response({'error': 'CAPTCHA verification failed'}, status=status.HTTP_400_BAD_REQUEST)
        if User.objects.filter(email=email).exists():
            return Response({'error': 'User exists'}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.create_user(email=email, password=password, full_name=full_name, role=role)
        logger.info("Registered user %s with role %s", user.user_id, role)

        return Response(issue_tokens(user), status=status.HTTP_201_CREATED)


class CurrentUserView(APIView):
    """GET /api/auth/me/ - Get current user"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """POST /api/auth/logout/ - Logout"""
    permission_classes = [AllowAny]

    def post(self, request):
        return Response({'message': 'Logged out'}, status=status.HTTP_200_OK)


class RouteAccessView(APIView):
    """GET /api/auth/route-access/?path=/admin - Can the caller open a frontend route"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        path = request.query_params.get('path') or '/'
        role = request.user.role
        return Response({
            'path': path,
            'role': role,
            'allowed': can_access_route(role, path),
        }, status=status.HTTP_200_OK)
