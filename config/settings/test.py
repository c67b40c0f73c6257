"""Test settings for StayNeos project.

SQLite in memory, Celery tasks executed inline and an in-memory e-mail
outbox. Stripe runs in emulation mode; the webhook secret is set so
signature verification can be exercised with a patched Stripe client.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

STRIPE_SECRET_KEY = ''
STRIPE_WEBHOOK_SECRET = 'whsec_test'
BOOKING_ADMIN_EMAIL = 'bookings@stayneos.test'
DEFAULT_FROM_EMAIL = 'no-reply@stayneos.test'

LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
# let pytest's caplog see application records
LOGGING['loggers']['apps']['propagate'] = True  # noqa: F405
LOGGING['loggers']['shared']['propagate'] = True  # noqa: F405
