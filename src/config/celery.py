"""Celery configuration."""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.prod"),
)

app = Celery("hrm8")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "expire-commissions": {
        "task": "commissions.tasks.expire_commissions",
        "schedule": crontab(minute=0, hour=2),  # Daily at 2am
    },
    "scan-compliance": {
        "task": "compliance.tasks.scan_compliance",
        "schedule": crontab(minute=0, hour=7),  # Daily at 7am
    },
    "close-previous-month-revenue": {
        "task": "regions.tasks.close_previous_month_revenue",
        "schedule": crontab(minute=0, hour=3),  # Daily at 3am, acts on the 1st
    },
}
