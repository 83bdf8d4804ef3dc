"""Test settings - uses SQLite for fast local testing."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

# Email
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
HRM8_NOTIFICATION_RECIPIENTS = ["ops@hrm8.test"]

# Jobs created by fixtures must not be auto-assigned behind the test's back
HRM8_AUTO_ASSIGN_ON_JOB_CREATE = False

# Disable logging noise during tests
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
LOGGING["handlers"].pop("file")  # noqa: F405
LOGGING["loggers"]["hrm8"]["handlers"] = ["console"]  # noqa: F405
LOGGING["loggers"]["hrm8"]["level"] = "WARNING"  # noqa: F405
