import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "jastip.settings")

app = Celery("jastip")

# Every CELERY_* entry in Django settings configures the app.
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
