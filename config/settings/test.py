"""Test settings for the Courtside project.

In-memory SQLite, eager Celery and a fast password hasher. Booking engine
values are pinned so tests do not depend on the environment.
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

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

BOOKING_ENGINE = {
    'TIMEZONE': 'Asia/Manila',
    'NO_SHOW_GRACE_MINUTES': 15,
    'NO_SHOW_LOOKBACK_DAYS': 1,
    'NO_SHOW_SWEEP_INTERVAL_SECONDS': 60,
    'AUTO_CONFIRM': False,
    'MAX_PENDING_PER_PLAYER': 5,
    'CANCELLATION_CUTOFF_MINUTES': 0,
    'DEFAULT_OPENING_TIME': '08:00',
    'DEFAULT_CLOSING_TIME': '18:00',
    'SLOT_MINUTES': 60,
}

CELERY_BEAT_SCHEDULE = beat_schedule(BOOKING_ENGINE)  # noqa: F405
