# src/apps/exams/tasks.py
"""
Exam Attempt Celery Tasks

Countdown expiry and the periodic sweep of overdue attempts.
"""

import logging
from typing import Optional

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from shared.common.exceptions import BaseAPIException

logger = logging.getLogger(__name__)


@shared_task(name='exams.expire_attempt')
def expire_attempt(attempt_id: str) -> Optional[dict]:
    """
    Force-submit an attempt whose time limit has been reached.

    Does nothing for an attempt that is already completed. If the task fires
    before the deadline (clock skew between workers) it schedules itself
    again for the deadline.

    Args:
        attempt_id: Attempt ID
    """
    from .models import ExamAttempt, CompletionSource
    from .services import CountdownController, ExamSessionService

    attempt = ExamAttempt.objects.filter(id=attempt_id).first()
    if attempt is None:
        logger.warning(f"Countdown fired for unknown attempt {attempt_id}")
        return None

    if attempt.is_completed:
        logger.debug(f"Countdown fired for completed attempt {attempt_id}, nothing to do")
        return None

    if attempt.time_limit_at and timezone.now() < attempt.time_limit_at:
        logger.info(f"Countdown for attempt {attempt_id} fired early, re-arming")
        CountdownController.arm(attempt)
        return None

    result = ExamSessionService.submit(attempt_id, source=CompletionSource.TIMEOUT)

    logger.info(
        f"Expired attempt {attempt_id}: score {result['score']}%, "
        f"already completed: {result['already_completed']}"
    )
    return {
        'attempt_id': attempt_id,
        'score': result['score'],
        'passed': result['passed'],
        'already_completed': result['already_completed'],
    }


@shared_task(name='exams.expire_overdue_attempts')
def expire_overdue_attempts(batch_size: Optional[int] = None) -> dict:
    """
    Close in-progress attempts whose deadline and grace period have passed.

    Catches attempts whose countdown task was lost, e.g. after a broker
    outage. Each attempt is submitted on its own, so one failure does not
    stop the sweep.

    Args:
        batch_size: Maximum attempts handled per run
    """
    from .models import ExamAttempt, CompletionSource
    from .services import ExamSessionService
    from .services.countdown import get_grace_period

    if batch_size is None:
        batch_size = getattr(settings, 'EXAM_ENGINE', {}).get('SWEEP_BATCH_SIZE', 200)

    cutoff = timezone.now() - get_grace_period()
    overdue_ids = list(
        ExamAttempt.objects.filter(
            completed_at__isnull=True,
            time_limit_at__isnull=False,
            time_limit_at__lt=cutoff,
        ).order_by('time_limit_at').values_list('id', flat=True)[:batch_size]
    )

    results = {'checked': len(overdue_ids), 'completed': 0, 'skipped': 0, 'failed': 0}

    for attempt_id in overdue_ids:
        try:
            result = ExamSessionService.submit(attempt_id, source=CompletionSource.SWEEP)
        except BaseAPIException as e:
            logger.error(f"Sweep could not submit attempt {attempt_id}: {e}")
            results['failed'] += 1
            continue

        if result['already_completed']:
            results['skipped'] += 1
        else:
            results['completed'] += 1

    logger.info(f"Overdue attempt sweep: {results}")
    return results
