# src/apps/exams/api/urls.py
"""
Exam Attempt Service API URLs

URL routing configuration for REST API endpoints.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ExamViewSet, ExamAttemptViewSet, ParticipantDashboardView

router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='exam')
router.register(r'attempts', ExamAttemptViewSet, basename='attempt')

urlpatterns = [
    path('', include(router.urls)),
    path('dashboard/', ParticipantDashboardView.as_view(), name='participant-dashboard'),
]

# API URL Patterns Summary:
#
# Exams:
#   POST        /api/v1/exams/{id}/start/
#   GET         /api/v1/exams/{id}/summary/
#   GET         /api/v1/exams/{id}/statistics/?participant_ids=...
#
# Attempts:
#   GET         /api/v1/attempts/?exam_id=...
#   GET         /api/v1/attempts/{id}/
#   POST        /api/v1/attempts/{id}/answers/
#   POST        /api/v1/attempts/{id}/submit/
#   GET         /api/v1/attempts/{id}/results/
#   GET         /api/v1/attempts/{id}/review/
#   GET         /api/v1/attempts/{id}/time-remaining/
#
# Dashboard:
#   GET         /api/v1/dashboard/
