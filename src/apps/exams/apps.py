"""
Exams Application Configuration
"""

from django.apps import AppConfig


class ExamsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.exams'
    label = 'exams'
    verbose_name = 'Exam Attempts'
