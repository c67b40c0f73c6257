"""Celery application for StayNeos.

Tasks are discovered from the installed apps; booking e-mails are the
only background work and they are queued by the booking message bus.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("stayneos")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
