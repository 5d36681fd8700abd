# src/apps/exams/services/countdown.py
"""
Countdown Controller

Each timed attempt gets one Celery task scheduled for its deadline. Remaining
time is always recomputed from the wall clock, so a restarted worker or a
reloaded client never extends a deadline.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from celery import current_app
from django.conf import settings
from django.utils import timezone
from kombu.exceptions import OperationalError

from ..models import Exam, ExamAttempt

logger = logging.getLogger(__name__)


def get_grace_period() -> timedelta:
    engine = getattr(settings, 'EXAM_ENGINE', {})
    return timedelta(seconds=engine.get('EXPIRY_GRACE_SECONDS', 0))


class CountdownController:
    """Deadline arithmetic plus arming and disarming of the expiry task."""

    @staticmethod
    def deadline_for(exam: Exam, started_at: datetime) -> Optional[datetime]:
        """Deadline of an attempt started at ``started_at``, None when untimed."""
        if not exam.is_timed:
            return None
        return started_at + timedelta(minutes=exam.time_limit_minutes)

    @staticmethod
    def remaining_seconds(attempt: ExamAttempt, now: Optional[datetime] = None) -> Optional[int]:
        """
        Seconds left on an attempt.

        Returns:
            None for untimed attempts, 0 once completed or expired
        """
        if attempt.time_limit_at is None:
            return None

        if attempt.is_completed:
            return 0

        now = now or timezone.now()
        remaining = (attempt.time_limit_at - now).total_seconds()
        return max(0, int(remaining))

    @staticmethod
    def is_past_grace(attempt: ExamAttempt, now: Optional[datetime] = None) -> bool:
        """Whether a timed attempt is beyond its deadline plus the grace period."""
        if attempt.time_limit_at is None:
            return False
        now = now or timezone.now()
        return now > attempt.time_limit_at + get_grace_period()

    @staticmethod
    def arm(attempt: ExamAttempt, eta: Optional[datetime] = None) -> Optional[str]:
        """
        Schedule forced submission of an attempt at its deadline.

        Args:
            attempt: Attempt to watch
            eta: Override for the firing time, used when re-arming

        Returns:
            The scheduled task id, None for untimed attempts or when the
            broker could not be reached
        """
        if attempt.time_limit_at is None:
            return None

        from ..tasks import expire_attempt

        try:
            result = expire_attempt.apply_async(
                args=[str(attempt.id)],
                eta=eta or attempt.time_limit_at,
            )
        except OperationalError as e:
            # The overdue sweep still closes the attempt.
            logger.warning(f"Could not arm countdown for attempt {attempt.id}: {e}")
            return None

        ExamAttempt.objects.filter(id=attempt.id).update(countdown_task_id=result.id)
        attempt.countdown_task_id = result.id

        logger.debug(f"Armed countdown {result.id} for attempt {attempt.id} at {eta or attempt.time_limit_at}")
        return result.id

    @staticmethod
    def disarm(attempt: ExamAttempt) -> None:
        """Revoke the pending expiry task of an attempt, if any."""
        task_id = attempt.countdown_task_id
        if not task_id:
            return

        try:
            current_app.control.revoke(task_id)
        except OperationalError as e:
            # A late firing is a no-op on a completed attempt.
            logger.warning(f"Could not revoke countdown {task_id} for attempt {attempt.id}: {e}")

        ExamAttempt.objects.filter(id=attempt.id).update(countdown_task_id='')
        attempt.countdown_task_id = ''
