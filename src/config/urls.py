"""Exam Attempt Service URL Configuration."""

from django.urls import path, include

urlpatterns = [
    path('api/v1/', include('apps.exams.api.urls')),
]
