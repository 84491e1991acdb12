import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("courtside")

# Broker, timezone and the beat schedule (CELERY_BEAT_SCHEDULE) come from
# the Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.timezone = "Asia/Manila"
