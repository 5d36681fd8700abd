"""
Celery application for Exam Attempt Service.

Runs attempt countdown timers and the overdue-attempt sweep.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('exam_attempt_service')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
