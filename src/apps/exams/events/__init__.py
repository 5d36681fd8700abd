# src/apps/exams/events/__init__.py
"""
Exam Attempt Events
"""

from .publishers import (
    publish_attempt_started,
    publish_attempt_completed,
    publish_certificate_issued,
)

__all__ = [
    'publish_attempt_started',
    'publish_attempt_completed',
    'publish_certificate_issued',
]
