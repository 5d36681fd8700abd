"""Base settings for Exam Attempt Service."""
import os
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', '*').split(',')

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'rest_framework',
    'apps.exams',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'exam_service_db'),
        'USER': os.environ.get('DB_USER', 'exam_service_user'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'exam_service_password'),
        'HOST': os.environ.get('DB_HOST', 'pgbouncer'),
        'PORT': os.environ.get('DB_PORT', '6432'),
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': ['shared.common.authentication.JWTAuthentication'],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.IsAuthenticated'],
    'EXCEPTION_HANDLER': 'shared.common.exceptions.custom_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

JWT_SETTINGS = {
    'ALGORITHM': os.environ.get('JWT_ALGORITHM', 'HS256'),
    'VERIFYING_KEY': os.environ.get('JWT_VERIFYING_KEY', SECRET_KEY),
    'ISSUER': os.environ.get('JWT_ISSUER', 'assessment-platform'),
}

# Celery
REDIS_URL = os.environ.get('REDIS_URL', 'redis://redis:6379/8')
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_TASK_TIME_LIMIT = 5 * 60
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_BEAT_SCHEDULE = {
    'expire-overdue-attempts': {
        'task': 'exams.expire_overdue_attempts',
        'schedule': crontab(minute='*'),
    },
}

# Attempt engine
EXAM_ENGINE = {
    # Answers arriving this long after the deadline are refused and the
    # attempt is force-submitted.
    'EXPIRY_GRACE_SECONDS': int(os.environ.get('EXAM_EXPIRY_GRACE_SECONDS', 5)),
    'CERTIFICATE_ISSUANCE_ENABLED': os.environ.get(
        'EXAM_CERTIFICATE_ISSUANCE_ENABLED', 'True'
    ).lower() == 'true',
    'SWEEP_BATCH_SIZE': int(os.environ.get('EXAM_SWEEP_BATCH_SIZE', 200)),
}

SERVICE_URLS = {
    'certificate-service': os.environ.get('CERTIFICATE_SERVICE_URL', 'http://certificate-service:8009'),
}
SERVICE_AUTH_TOKEN = os.environ.get('SERVICE_AUTH_TOKEN', 'service-auth-token')
SERVICE_NAME = 'exam-attempt-service'
SERVICE_PORT = 8014

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {'standard': {'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'}},
    'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'standard'}},
    'root': {'handlers': ['console'], 'level': 'INFO'},
    'loggers': {
        'django': {'handlers': ['console'], 'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'), 'propagate': False},
        'apps': {'handlers': ['console'], 'level': 'DEBUG', 'propagate': False},
        'shared': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}
