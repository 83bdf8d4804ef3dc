"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True
ENABLE_DJANGO_ADMIN = True

# Run sweeps and auto-assignment inline unless a worker is started explicitly
CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=True)  # noqa: F405

# Email: notifications are printed to the console
EMAIL_BACKEND = env(  # noqa: F405
    "EMAIL_BACKEND",
    default="django.core.mail.backends.console.EmailBackend",
)
HRM8_NOTIFICATION_RECIPIENTS = env.list(  # noqa: F405
    "HRM8_NOTIFICATION_RECIPIENTS",
    default=["ops@hrm8.local"],
)

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
