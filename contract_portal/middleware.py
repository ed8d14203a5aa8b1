"""
Middleware for request correlation, tenant scoping, metrics and audit logging
"""
import logging
import uuid

from django.conf import settings
from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin
from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')


class RequestIdMiddleware(MiddlewareMixin):
    """Attach a request id for correlation across logs."""

    HEADER = 'X-Request-ID'

    def process_request(self, request):
        rid = request.META.get('HTTP_X_REQUEST_ID')
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        return None

    def process_response(self, request, response):
        rid = getattr(request, 'request_id', None)
        if rid:
            response.headers.setdefault(self.HEADER, rid)
        return response


class TenantIsolationMiddleware(MiddlewareMixin):
    """
    Expose the caller's tenant on the request.

    Session-authenticated users (Django admin) are resolved here; bearer
    authenticated API calls set `request.tenant_id` in the DRF auth class.
    """

    def process_request(self, request):
        request.tenant_id = None
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            request.tenant_id = getattr(user, 'tenant_id', None)
            if not request.tenant_id:
                logger.warning("User %s has no tenant_id", getattr(user, 'pk', None))
        return None


class AuditLoggingMiddleware(MiddlewareMixin):
    """
    Log one audit line per API request
    """

    EXCLUDED_PATHS = [
        '/api/health/',
        '/static/',
        '/metrics',
    ]

    def should_log(self, path):
        return path.startswith('/api/') and not any(path.startswith(p) for p in self.EXCLUDED_PATHS)

    def process_request(self, request):
        if self.should_log(request.path):
            request._audit_started_at = timezone.now()
        return None

    def process_response(self, request, response):
        if not hasattr(request, '_audit_started_at'):
            return response

        # DRF authenticates lazily inside the view, so resolve the user here.
        user = getattr(request, 'user', None)
        authenticated = bool(user is not None and getattr(user, 'is_authenticated', False))
        user_id = getattr(user, 'user_id', None) if authenticated else None
        role = getattr(user, 'role', None) if authenticated else None
        tenant_id = getattr(user, 'tenant_id', None) if authenticated else None

        audit_logger.info(
            f"API_CALL|method={request.method}|endpoint={request.path}|"
            f"status={response.status_code}|user_id={user_id}|role={role}|"
            f"tenant_id={tenant_id}|ip={self.get_client_ip(request)}|"
            f"request_id={getattr(request, 'request_id', None)}"
        )

        if response.status_code >= 500:
            logger.error(
                f"API Error: {request.method} {request.path} - "
                f"Status: {response.status_code} - User: {user_id}"
            )
        elif response.status_code >= 400:
            logger.warning(
                f"API Error: {request.method} {request.path} - "
                f"Status: {response.status_code} - User: {user_id}"
            )
        return response

    @staticmethod
    def get_client_ip(request):
        """Extract client IP address from request"""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')


class SecurityHeadersMiddleware(MiddlewareMixin):
    """Add security headers for API responses."""

    def process_response(self, request, response):
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', getattr(settings, 'SECURE_REFERRER_POLICY', 'same-origin'))

        csp = getattr(settings, 'CONTENT_SECURITY_POLICY', None)
        if csp:
            response.headers.setdefault('Content-Security-Policy', csp)

        # Tokens and approval links must never be cached by intermediaries.
        if request.path.startswith('/api/auth/') or request.path.startswith('/api/v1/approvals/'):
            response.headers.setdefault('Cache-Control', 'no-store')
            response.headers.setdefault('Pragma', 'no-cache')
        return response


API_REQUEST_COUNT = Counter(
    'contract_portal_api_requests_total',
    'Total API requests',
    ['method', 'path', 'status'],
)
API_REQUEST_LATENCY = Histogram(
    'contract_portal_api_request_latency_seconds',
    'API request latency (seconds)',
    ['method', 'path'],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


class MetricsMiddleware(MiddlewareMixin):
    """Prometheus request metrics for /api/* routes."""

    def process_request(self, request):
        request._metrics_start_ts = timezone.now()
        return None

    def process_response(self, request, response):
        if not request.path.startswith('/api/'):
            return response

        start = getattr(request, '_metrics_start_ts', None)
        if start is None:
            return response
        duration = (timezone.now() - start).total_seconds()

        # Label by resolved route pattern to keep cardinality low.
        match = getattr(request, 'resolver_match', None)
        path = getattr(match, 'route', None) or request.path
        if len(path) > 120:
            path = path[:120]

        API_REQUEST_COUNT.labels(method=request.method, path=path, status=str(response.status_code)).inc()
        API_REQUEST_LATENCY.labels(method=request.method, path=path).observe(duration)
        return response
