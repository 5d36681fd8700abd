# src/apps/exams/api/views/__init__.py
"""
Exam Attempt API Views
"""

from .exam_views import ExamViewSet
from .attempt_views import ExamAttemptViewSet
from .dashboard_views import ParticipantDashboardView

__all__ = [
    'ExamViewSet',
    'ExamAttemptViewSet',
    'ParticipantDashboardView',
]
