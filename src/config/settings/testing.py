"""
Test Settings

Django settings for running tests.
"""

from .base import *

DEBUG = False
TESTING = True

# Use in-memory SQLite for faster tests
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}


# Disable migrations for faster tests
class DisableMigrations:
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


MIGRATION_MODULES = DisableMigrations()

# In-process broker, tests patch task scheduling explicitly
CELERY_BROKER_URL = 'memory://'
CELERY_TASK_ALWAYS_EAGER = False

JWT_SETTINGS = {
    'ALGORITHM': 'HS256',
    'VERIFYING_KEY': 'test-secret-key-for-testing-only',
    'ISSUER': 'assessment-platform',
}

SERVICE_URLS = {
    'certificate-service': 'http://certificate-service.test',
}

EXAM_ENGINE = {
    'EXPIRY_GRACE_SECONDS': 5,
    'CERTIFICATE_ISSUANCE_ENABLED': True,
    'SWEEP_BATCH_SIZE': 50,
}

# Logging - minimal output during tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'CRITICAL',
    },
    'loggers': {
        'django': {
            'handlers': ['null'],
            'level': 'CRITICAL',
            'propagate': False,
        },
        'apps': {
            'handlers': ['null'],
            'level': 'CRITICAL',
            'propagate': False,
        },
    },
}
