# src/apps/exams/events/publishers.py
"""
Event Publishers

Functions for publishing attempt lifecycle events to other services.
"""

import logging
from typing import Dict, Any, Optional

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


def _publish_event(event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Publish an event.

    Events go out through the structured log stream, which the platform's
    log shipper forwards to subscribers.

    Args:
        event_type: Type of event
        data: Event data payload

    Returns:
        The published envelope
    """
    event = {
        'type': event_type,
        'timestamp': timezone.now().isoformat(),
        'service': getattr(settings, 'SERVICE_NAME', 'exam-attempt-service'),
        'data': data
    }

    logger.info(f"Publishing event: {event_type}", extra={'event_data': event})
    return event


def publish_attempt_started(
    attempt_id: str,
    exam_id: str,
    participant_id: str,
    attempt_number: int,
    time_limit_at: Optional[str] = None
) -> Dict[str, Any]:
    """
    Publish attempt started event.

    Args:
        attempt_id: Attempt ID
        exam_id: Exam ID
        participant_id: Participant ID
        attempt_number: Sequential number of the attempt
        time_limit_at: Deadline (ISO format) for timed exams
    """
    return _publish_event('exams.attempt_started', {
        'attempt_id': attempt_id,
        'exam_id': exam_id,
        'participant_id': participant_id,
        'attempt_number': attempt_number,
        'time_limit_at': time_limit_at,
    })


def publish_attempt_completed(
    attempt_id: str,
    exam_id: str,
    participant_id: str,
    score: int,
    passed: bool,
    source: str
) -> Dict[str, Any]:
    """
    Publish attempt completed event.

    Args:
        attempt_id: Attempt ID
        exam_id: Exam ID
        participant_id: Participant ID
        score: Final score percent
        passed: Whether the attempt passed
        source: manual, timeout or sweep
    """
    return _publish_event('exams.attempt_completed', {
        'attempt_id': attempt_id,
        'exam_id': exam_id,
        'participant_id': participant_id,
        'score': score,
        'passed': passed,
        'source': source,
    })


def publish_certificate_issued(
    attempt_id: str,
    exam_id: str,
    participant_id: str,
    certificate_id: str
) -> Dict[str, Any]:
    """Publish certificate issued event."""
    return _publish_event('exams.certificate_issued', {
        'attempt_id': attempt_id,
        'exam_id': exam_id,
        'participant_id': participant_id,
        'certificate_id': certificate_id,
    })
