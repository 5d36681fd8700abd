# src/apps/exams/api/serializers/__init__.py
"""
Exam Attempt API Serializers
"""

from .attempt_serializers import (
    AnswerSerializer,
    ExamStatisticsQuerySerializer,
    ExamAttemptSerializer,
)

__all__ = [
    'AnswerSerializer',
    'ExamStatisticsQuerySerializer',
    'ExamAttemptSerializer',
]
