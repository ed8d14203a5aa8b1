from pathlib import Path
from datetime import timedelta
import os
from urllib.parse import urlparse, unquote
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from this project reliably (do not depend on CWD).
load_dotenv(dotenv_path=BASE_DIR / '.env', override=False)


def _env_bool(name: str, default: str = 'False') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'y', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-dev-key-12345')

DEBUG = _env_bool('DEBUG')

# When enabled, refuse to run in production with placeholder secrets.
SECURITY_STRICT = _env_bool('SECURITY_STRICT')

if DEBUG:
    ALLOWED_HOSTS = ['*']
else:
    _hosts = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').strip()
    ALLOWED_HOSTS = [h.strip() for h in _hosts.split(',') if h.strip()]

if SECURITY_STRICT and (not DEBUG) and SECRET_KEY == 'django-insecure-dev-key-12345':
    raise RuntimeError('DJANGO_SECRET_KEY must be set when SECURITY_STRICT is enabled')

# Public base URL of this API (used in generated download links).
BACKEND_URL = (os.getenv('BACKEND_URL') or 'http://localhost:8000').strip().rstrip('/')

# Frontend host used for approval-by-link emails.
FRONTEND_BASE_URL = (os.getenv('FRONTEND_BASE_URL') or 'http://localhost:3000').strip().rstrip('/')

# Preview / mock-data mode: contract layouts are served from placeholder data
# and CAPTCHA verification is skipped.
PREVIEW_MODE = _env_bool('PREVIEW_MODE')

# Third-party CAPTCHA (reCAPTCHA-compatible siteverify endpoint)
CAPTCHA_SECRET_KEY = (os.getenv('CAPTCHA_SECRET_KEY') or os.getenv('RECAPTCHA_SECRET_KEY') or '').strip()
CAPTCHA_VERIFY_URL = (
    os.getenv('CAPTCHA_VERIFY_URL') or 'https://www.google.com/recaptcha/api/siteverify'
).strip()
CAPTCHA_TIMEOUT = int(os.getenv('CAPTCHA_TIMEOUT', '5'))

# Figma plugin export
FIGMA_PLUGIN_API_KEY = (os.getenv('FIGMA_PLUGIN_API_KEY') or '').strip()

APPROVAL_TOKEN_TTL_HOURS = int(os.getenv('APPROVAL_TOKEN_TTL_HOURS', '72'))

# Optional TTF font with Arabic glyphs for PDF output.
PDF_ARABIC_FONT_PATH = (os.getenv('PDF_ARABIC_FONT_PATH') or '').strip()

LETTERHEAD_PLACEHOLDER_URL = (
    os.getenv('LETTERHEAD_PLACEHOLDER_URL') or '/placeholder.svg?height=200&width=800&query=company+letterhead'
).strip()

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'drf_spectacular',
    'corsheaders',
    'authentication',
    'contracts',
    'notifications',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'contract_portal.middleware.RequestIdMiddleware',
    'contract_portal.middleware.TenantIsolationMiddleware',
    'contract_portal.middleware.MetricsMiddleware',
    'contract_portal.middleware.AuditLoggingMiddleware',
    'contract_portal.middleware.SecurityHeadersMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'contract_portal.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'contract_portal.wsgi.application'

DATABASE_URL = os.getenv('DATABASE_URL', '').strip()


def _parse_database_url(database_url: str) -> dict:
    """Parse a Postgres DATABASE_URL into Django DATABASES['default'] keys."""
    parsed = urlparse(database_url)
    scheme = (parsed.scheme or '').lower()
    if scheme not in ('postgres', 'postgresql'):
        raise ValueError('DATABASE_URL must start with postgresql://')

    return {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': (parsed.path or '').lstrip('/') or 'postgres',
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname or '',
        'PORT': str(parsed.port or 5432),
        'CONN_MAX_AGE': int(os.getenv('DB_CONN_MAX_AGE', '60')),
        'CONN_HEALTH_CHECKS': True,
        'OPTIONS': {
            'sslmode': os.getenv('DB_SSLMODE', 'prefer'),
            'connect_timeout': int(os.getenv('DB_CONNECT_TIMEOUT', '20')),
        },
    }


if DATABASE_URL:
    DATABASES = {'default': _parse_database_url(DATABASE_URL)}
else:
    # Local development and the test suite run on SQLite.
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
LANGUAGES = [
    ('en', 'English'),
    ('ar', 'Arabic'),
]
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Generated contract PDFs are written through default_storage
MEDIA_URL = 'media/'
MEDIA_ROOT = Path(os.getenv('MEDIA_ROOT') or (BASE_DIR / 'media'))

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'authentication.User'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'authentication.authentication.BearerJWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_SCHEMA_CLASS': 'contract_portal.schema.FeatureAutoSchema',
    'EXCEPTION_HANDLER': 'contract_portal.exceptions.api_exception_handler',
    'DEFAULT_THROTTLE_CLASSES': [
        'contract_portal.throttling.TenantUserRateThrottle',
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.ScopedRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        # Applies to AnonRateThrottle
        'anon': os.getenv('THROTTLE_ANON', '60/min'),
        # Applies to TenantUserRateThrottle
        'tenant_user': os.getenv('THROTTLE_TENANT_USER', '600/min'),
        # Scoped throttles (set `throttle_scope = ...` on views)
        'auth': os.getenv('THROTTLE_AUTH', '10/min'),
        'approval_link': os.getenv('THROTTLE_APPROVAL_LINK', '30/min'),
        'edge': os.getenv('THROTTLE_EDGE', '60/min'),
        'figma': os.getenv('THROTTLE_FIGMA', '120/min'),
        'pdf': os.getenv('THROTTLE_PDF', '20/min'),
    },
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.getenv('JWT_ACCESS_HOURS', '24'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': False,
    'UPDATE_LAST_LOGIN': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'user_id',
    'USER_ID_CLAIM': 'user_id',
}

# OpenAPI / Swagger (drf-spectacular)
SPECTACULAR_SETTINGS = {
    'TITLE': os.getenv('OPENAPI_TITLE', 'Contract Portal API'),
    'DESCRIPTION': os.getenv(
        'OPENAPI_DESCRIPTION',
        'Bilingual contract generation and approval backend (Django REST Framework).'
    ),
    'VERSION': os.getenv('OPENAPI_VERSION', '1.0.0'),
    'SECURITY': [{'bearerAuth': []}],
    'COMPONENT_SPLIT_REQUEST': True,
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENTS': {
        'securitySchemes': {
            'bearerAuth': {
                'type': 'http',
                'scheme': 'bearer',
                'bearerFormat': 'JWT',
            }
        }
    },
    'SWAGGER_UI_SETTINGS': {
        'persistAuthorization': True,
    },
}

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
]


def _normalize_cors_origin(origin: str) -> str | None:
    """Normalize an origin to scheme://host[:port] (no path/query/fragment).

    django-cors-headers rejects origins that include paths.
    """

    raw = (origin or '').strip()
    if not raw:
        return None

    parsed = urlparse(raw)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"

    return raw.rstrip('/') or None


_cors_extra = os.getenv('CORS_ALLOWED_ORIGINS_EXTRA', '').strip()
if _cors_extra:
    for _origin in [o.strip() for o in _cors_extra.split(',') if o.strip()]:
        _normalized_origin = _normalize_cors_origin(_origin)
        if _normalized_origin and _normalized_origin not in CORS_ALLOWED_ORIGINS:
            CORS_ALLOWED_ORIGINS.append(_normalized_origin)

_frontend_origin = _normalize_cors_origin(FRONTEND_BASE_URL)
if _frontend_origin and _frontend_origin not in CORS_ALLOWED_ORIGINS:
    CORS_ALLOWED_ORIGINS.append(_frontend_origin)

CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = ['DELETE', 'GET', 'OPTIONS', 'PATCH', 'POST', 'PUT']
CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'dnt',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
    'x-api-key',
    'x-request-id',
]

# Edge functions answer their own preflight requests with wildcard CORS headers
CORS_URLS_REGEX = r'^/(?!api/edge-functions/).*$'

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = _env_bool('SECURE_SSL_REDIRECT')
SESSION_COOKIE_SECURE = _env_bool('SESSION_COOKIE_SECURE')
CSRF_COOKIE_SECURE = _env_bool('CSRF_COOKIE_SECURE')
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = os.getenv('SECURE_REFERRER_POLICY', 'same-origin')

_csrf_trusted = os.getenv('CSRF_TRUSTED_ORIGINS', '').strip()
if _csrf_trusted:
    CSRF_TRUSTED_ORIGINS = [o.strip() for o in _csrf_trusted.split(',') if o.strip()]

# ---------------------------------------------------------------------------
# Cache (used by DRF throttling and reminder bookkeeping)
# ---------------------------------------------------------------------------

REDIS_URL = (os.getenv('REDIS_URL', '') or os.getenv('CACHE_REDIS_URL', '')).strip()
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
            'TIMEOUT': int(os.getenv('CACHE_DEFAULT_TIMEOUT', '300')),
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'contract-portal',
        }
    }

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').strip().upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'audit': {
            'handlers': ['console'],
            'level': os.getenv('AUDIT_LOG_LEVEL', 'INFO').strip().upper(),
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}

# Email Configuration - SMTP
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_USE_TLS = _env_bool('EMAIL_USE_TLS', 'True')
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', EMAIL_HOST_USER or 'noreply@example.com')
SERVER_EMAIL = os.getenv('SERVER_EMAIL', DEFAULT_FROM_EMAIL)

if SECURITY_STRICT and (not DEBUG) and (not EMAIL_HOST_USER or not EMAIL_HOST_PASSWORD):
    raise RuntimeError('Email credentials must be set when SECURITY_STRICT is enabled')

# Celery Configuration
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 10 * 60
CELERY_TASK_SOFT_TIME_LIMIT = 8 * 60
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER')
CELERY_BEAT_SCHEDULE = {
    'approval-reminders-daily': {
        'task': 'contracts.tasks.send_pending_approval_reminders',
        'schedule': 60 * 60,
        'args': ('daily',),
    },
    'approval-reminders-weekly': {
        'task': 'contracts.tasks.send_pending_approval_reminders',
        'schedule': 60 * 60,
        'args': ('weekly',),
    },
    'clear-expired-notifications': {
        'task': 'notifications.tasks.clear_expired_notifications',
        'schedule': 6 * 60 * 60,
    },
    'expire-approval-tokens': {
        'task': 'contracts.tasks.expire_approval_tokens',
        'schedule': 24 * 60 * 60,
    },
}

# Prometheus scrape protection (empty = open)
METRICS_TOKEN = (os.getenv('METRICS_TOKEN') or '').strip()
