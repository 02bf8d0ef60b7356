"""
Django settings for SimpleAutomate.

Uses PostgreSQL as the database and django-rest-framework for the API layer.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-secret-key-change-in-production')

DEBUG = os.environ.get('DEBUG', 'True').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.sessions',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'django_q',
    'crm',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
]

# Don't redirect to add trailing slashes: API clients send exact URLs
APPEND_SLASH = False

ROOT_URLCONF = 'simpleautomate.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
    },
]

WSGI_APPLICATION = 'simpleautomate.wsgi.application'

# Database: PostgreSQL in production, SQLite for local dev
DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'simpleautomate'),
            'USER': os.environ.get('DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('DB_PASSWORD', 'postgres'),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }

STATIC_URL = '/static/'

# CORS
CORS_ALLOW_ALL_ORIGINS = DEBUG
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('FRONTEND_URLS', 'http://localhost:5173').split(',')
]
CORS_ALLOW_CREDENTIALS = True

# DRF: every API view is tenant-scoped to request.user
REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_PAGINATION_CLASS': None,
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
}

# Shared secret for the periodic sweep endpoint (POST /api/cron/run)
CRON_SECRET = os.environ.get('CRON_SECRET', 'dev-cron-secret')

# Outbound email: console backend locally, SMTP or a provider backend in production
EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', '25'))
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = os.environ.get('EMAIL_USE_TLS', 'False').lower() in ('true', '1', 'yes')
EMAIL_FROM = os.environ.get('EMAIL_FROM', 'SimpleAutomate <hello@simpleautomate.co.uk>')
DEFAULT_FROM_EMAIL = EMAIL_FROM

# Automation engine
AUTOMATION_BATCH_SIZE = int(os.environ.get('AUTOMATION_BATCH_SIZE', '20'))
# PROCESSING entries older than this are handed back to the queue
AUTOMATION_CLAIM_TIMEOUT_MINUTES = int(os.environ.get('AUTOMATION_CLAIM_TIMEOUT_MINUTES', '15'))
# Skip contacts a DATE automation has already enqueued
AUTOMATION_DATE_TRIGGER_DEDUP = os.environ.get(
    'AUTOMATION_DATE_TRIGGER_DEDUP', 'False'
).lower() in ('true', '1', 'yes')

# django-q2: lightweight task queue using the ORM broker (no Redis needed)
Q_CLUSTER = {
    'name': 'simpleautomate',
    'workers': 3,
    'timeout': 120,
    'retry': 180,
    'orm': 'default',
    'bulk': 10,
    'catch_up': False,
}

# All datetimes are timezone-aware UTC
USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
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
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
}
