# src/apps/exams/services/attempt_ledger.py
"""
Attempt Ledger

Owns attempt numbering, the attempt ceiling and the completion claim.

Numbers are handed out when an attempt is created. Reservation locks the
(exam, participant) ``AttemptSequence`` row, so concurrent starts for the same
pair queue up behind each other. Only completed attempts count towards
``max_attempts``; an abandoned attempt keeps its number but never blocks a
new one.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional

from django.db import DatabaseError
from django.db.models import Max
from django.utils import timezone

from shared.common.exceptions import AttemptLimitExceededError, StoreUnavailableError

from ..models import Exam, ExamAttempt, AttemptSequence

logger = logging.getLogger(__name__)


class AttemptLedger:
    """Numbering, ceiling and completion persistence for attempts."""

    @staticmethod
    def completed_count(exam_id: str, participant_id: str) -> int:
        return ExamAttempt.objects.filter(
            exam_id=exam_id,
            participant_id=participant_id,
            completed_at__isnull=False,
        ).count()

    @staticmethod
    def remaining_attempts(exam: Exam, participant_id: str) -> int:
        used = AttemptLedger.completed_count(exam.id, participant_id)
        return max(0, exam.max_attempts - used)

    @staticmethod
    def reserve_next(exam: Exam, participant_id: str) -> int:
        """
        Reserve the next attempt number for a participant.

        Must run inside ``transaction.atomic``; the sequence row stays locked
        until that transaction ends, so the ceiling check and the number
        hand-out happen as one step.

        Args:
            exam: Exam being started
            participant_id: Participant ID

        Returns:
            The reserved attempt number

        Raises:
            AttemptLimitExceededError: Completed attempts already reach the ceiling
            StoreUnavailableError: The store could not be read or written
        """
        try:
            AttemptSequence.objects.get_or_create(exam=exam, participant_id=participant_id)
            sequence = AttemptSequence.objects.select_for_update().get(
                exam=exam,
                participant_id=participant_id
            )

            used = AttemptLedger.completed_count(exam.id, participant_id)
            if used >= exam.max_attempts:
                raise AttemptLimitExceededError(
                    exam_id=exam.id,
                    participant_id=participant_id,
                    attempts_used=used,
                    max_attempts=exam.max_attempts,
                )

            highest = ExamAttempt.objects.filter(
                exam=exam,
                participant_id=participant_id
            ).aggregate(highest=Max('attempt_number'))['highest'] or 0

            sequence.last_number = max(sequence.last_number, highest) + 1
            sequence.save(update_fields=['last_number'])
        except DatabaseError as e:
            logger.error(
                f"Failed to reserve attempt number for exam {exam.id}, "
                f"participant {participant_id}: {e}"
            )
            raise StoreUnavailableError(exam_id=exam.id, participant_id=participant_id)

        logger.debug(
            f"Reserved attempt {sequence.last_number} for exam {exam.id}, "
            f"participant {participant_id} ({used}/{exam.max_attempts} used)"
        )
        return sequence.last_number

    @staticmethod
    def record_completion(
        attempt_id: str,
        answers: Dict[str, str],
        score: int,
        passed: bool,
        earned_points: int,
        total_points: int,
        correct_count: int,
        question_results: Dict[str, Any],
        source: str,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Claim completion of an attempt and persist its result.

        A single conditional update on ``completed_at IS NULL``: of any number
        of concurrent callers exactly one sees a row updated.

        Returns:
            True when this call completed the attempt
        """
        try:
            updated = ExamAttempt.objects.filter(
                id=attempt_id,
                completed_at__isnull=True,
            ).update(
                completed_at=completed_at or timezone.now(),
                answers=answers,
                score=score,
                passed=passed,
                earned_points=earned_points,
                total_points=total_points,
                correct_count=correct_count,
                question_results=question_results,
                completion_source=source,
                updated_at=timezone.now(),
            )
        except DatabaseError as e:
            logger.error(f"Failed to record completion of attempt {attempt_id}: {e}")
            raise StoreUnavailableError(attempt_id=attempt_id)

        return updated == 1
