# src/apps/exams/services/session_service.py
"""
Exam Session Service

Business logic for running an exam attempt from start to completion.

An attempt is in progress while ``completed_at`` is null and becomes
read-only history once it is set. Every mutation locks the attempt row first,
so an answer that arrives while a submission is finalizing waits for it and
is then refused.
"""

import logging
from typing import Dict, Any, List, Mapping, Optional

from django.db import DatabaseError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from shared.common.exceptions import (
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
)

from ..events.publishers import publish_attempt_started, publish_attempt_completed
from ..models import ExamAttempt, CompletionSource, Question
from .attempt_ledger import AttemptLedger
from .certificate_trigger import CertificateTrigger
from .countdown import CountdownController
from .question_bank import QuestionBank
from .question_selector import select_questions
from .scoring import score_attempt

logger = logging.getLogger(__name__)


class ExamSessionService:
    """Service for exam sessions and their attempts."""

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _get_attempt(
        attempt_id: str,
        participant_id: str = None,
        for_update: bool = False
    ) -> ExamAttempt:
        filters = {'id': attempt_id}
        if participant_id:
            filters['participant_id'] = participant_id

        queryset = ExamAttempt.objects.all()
        if for_update:
            queryset = queryset.select_for_update()

        try:
            return queryset.get(**filters)
        except ExamAttempt.DoesNotExist:
            raise NotFoundError(
                detail=f"Attempt {attempt_id} not found",
                attempt_id=attempt_id,
                participant_id=participant_id,
            )
        except DatabaseError as e:
            logger.error(f"Failed to load attempt {attempt_id}: {e}")
            raise StoreUnavailableError(attempt_id=attempt_id, participant_id=participant_id)

    @staticmethod
    def _format_questions(
        attempt: ExamAttempt,
        questions_by_id: Mapping[str, Question]
    ) -> List[Dict[str, Any]]:
        """Questions of an attempt in frozen order, without correct answers."""
        formatted = []
        for index, question_id in enumerate(attempt.question_order):
            question = questions_by_id.get(question_id)
            if question is None:
                continue

            item = question.get_for_attempt(
                frozen_options=attempt.option_orderings.get(question_id),
                letter_order=attempt.option_letter_order.get(question_id),
            )
            item['order'] = index + 1
            formatted.append(item)
        return formatted

    @staticmethod
    def _result_payload(attempt: ExamAttempt, already_completed: bool) -> Dict[str, Any]:
        result = attempt.get_results()
        result['question_results'] = attempt.question_results
        result['already_completed'] = already_completed
        return result

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    @staticmethod
    def start_session(exam_id: str, participant_id: str) -> Dict[str, Any]:
        """
        Start a new exam attempt.

        The attempt ceiling is checked before any question is drawn.

        Args:
            exam_id: Exam ID
            participant_id: Participant ID

        Returns:
            Session data with questions in presentation order

        Raises:
            NotFoundError: Unknown exam
            AttemptLimitExceededError: No attempts left
            StoreUnavailableError: The store could not be read or written
        """
        exam = QuestionBank.get_exam(exam_id)

        with transaction.atomic():
            attempt_number = AttemptLedger.reserve_next(exam, participant_id)

            questions = QuestionBank.get_questions(exam.id)
            selection = select_questions(
                questions,
                exam.questions_per_exam,
                randomize_options=exam.randomize_options,
            )

            started_at = timezone.now()
            try:
                attempt = ExamAttempt.objects.create(
                    exam=exam,
                    participant_id=participant_id,
                    attempt_number=attempt_number,
                    started_at=started_at,
                    time_limit_at=CountdownController.deadline_for(exam, started_at),
                    question_order=selection.question_order,
                    option_orderings=selection.option_orderings,
                    option_letter_order=selection.option_letter_order,
                )
            except DatabaseError as e:
                logger.error(f"Failed to create attempt for exam {exam.id}: {e}")
                raise StoreUnavailableError(exam_id=exam.id, participant_id=participant_id)

        CountdownController.arm(attempt)

        publish_attempt_started(
            attempt_id=str(attempt.id),
            exam_id=str(exam.id),
            participant_id=str(participant_id),
            attempt_number=attempt_number,
            time_limit_at=attempt.time_limit_at.isoformat() if attempt.time_limit_at else None,
        )

        logger.info(
            f"Started attempt {attempt.id} (#{attempt_number}) for exam {exam.id}, "
            f"participant {participant_id}, {len(selection.question_order)} questions"
        )

        questions_by_id = {str(q.id): q for q in questions}
        formatted_questions = ExamSessionService._format_questions(attempt, questions_by_id)

        return {
            'attempt_id': str(attempt.id),
            'exam_id': str(exam.id),
            'exam_title': exam.title,
            'attempt_number': attempt_number,
            'started_at': attempt.started_at.isoformat(),
            'time_limit_minutes': exam.time_limit_minutes or None,
            'time_limit_at': attempt.time_limit_at.isoformat() if attempt.time_limit_at else None,
            'remaining_seconds': CountdownController.remaining_seconds(attempt),
            'passing_score': exam.passing_score,
            'total_questions': len(formatted_questions),
            'total_points': sum(q['points'] for q in formatted_questions),
            'questions': formatted_questions,
        }

    @staticmethod
    def save_answer(
        attempt_id: str,
        participant_id: str,
        question_id: str,
        answer: Optional[str]
    ) -> Dict[str, Any]:
        """
        Capture the answer to one question, replacing any earlier one.

        Args:
            attempt_id: Attempt ID
            participant_id: Participant ID (ownership check)
            question_id: Question ID, must belong to the attempt
            answer: Answer text, empty means unanswered

        Returns:
            Save confirmation

        Raises:
            InvalidStateError: The attempt is completed, or its time ran out
            NotFoundError: Unknown attempt, or question not in this attempt
        """
        question_id = str(question_id)

        with transaction.atomic():
            attempt = ExamSessionService._get_attempt(attempt_id, participant_id, for_update=True)

            if attempt.is_completed:
                raise InvalidStateError(
                    detail="Attempt is already completed",
                    attempt_id=attempt.id,
                    exam_id=attempt.exam_id,
                    participant_id=participant_id,
                )

            if question_id not in attempt.question_order:
                raise NotFoundError(
                    detail=f"Question {question_id} is not part of this attempt",
                    attempt_id=attempt.id,
                    question_id=question_id,
                )

            expired = CountdownController.is_past_grace(attempt)
            if not expired:
                attempt.answers[question_id] = '' if answer is None else str(answer)
                try:
                    attempt.save(update_fields=['answers', 'updated_at'])
                except DatabaseError as e:
                    logger.error(f"Failed to save answer for attempt {attempt.id}: {e}")
                    raise StoreUnavailableError(attempt_id=attempt.id)

        if expired:
            logger.info(f"Answer for attempt {attempt.id} arrived after the deadline, submitting")
            ExamSessionService.submit(attempt.id, source=CompletionSource.TIMEOUT)
            raise InvalidStateError(
                detail="Time limit exceeded, the attempt has been submitted",
                attempt_id=attempt.id,
                exam_id=attempt.exam_id,
                participant_id=participant_id,
            )

        return {
            'saved': True,
            'question_id': question_id,
            'answered_count': attempt.answered_count,
            'remaining_seconds': CountdownController.remaining_seconds(attempt),
        }

    @staticmethod
    def submit(
        attempt_id: str,
        participant_id: str = None,
        source: str = CompletionSource.MANUAL
    ) -> Dict[str, Any]:
        """
        Submit an attempt for scoring.

        Idempotent: submitting a completed attempt returns the stored result
        with ``already_completed`` set, without scoring or writing again.

        Args:
            attempt_id: Attempt ID
            participant_id: Optional participant ID for ownership check
            source: manual, timeout or sweep

        Returns:
            Attempt results

        Raises:
            NotFoundError: Unknown attempt, or a question vanished from the bank
            StoreUnavailableError: Scoring or the completion write failed; the
                attempt stays in progress
        """
        with transaction.atomic():
            attempt = ExamSessionService._get_attempt(attempt_id, participant_id, for_update=True)

            if attempt.is_completed:
                logger.info(f"Attempt {attempt.id} already completed, returning stored result")
                return ExamSessionService._result_payload(attempt, already_completed=True)

            exam = attempt.exam
            questions_by_id = QuestionBank.get_questions_by_id(exam.id, attempt.question_order)
            result = score_attempt(
                attempt.question_order,
                attempt.answers,
                questions_by_id,
                exam.passing_score,
            )

            completed = AttemptLedger.record_completion(
                attempt.id,
                answers=attempt.answers,
                score=result.score,
                passed=result.passed,
                earned_points=result.earned_points,
                total_points=result.total_points,
                correct_count=result.correct_count,
                question_results=result.question_results,
                source=source,
            )
            attempt.refresh_from_db()

        if not completed:
            return ExamSessionService._result_payload(attempt, already_completed=True)

        CountdownController.disarm(attempt)

        publish_attempt_completed(
            attempt_id=str(attempt.id),
            exam_id=str(attempt.exam_id),
            participant_id=str(attempt.participant_id),
            score=attempt.score,
            passed=attempt.passed,
            source=source,
        )

        logger.info(
            f"Completed attempt {attempt.id} ({source}), "
            f"score: {attempt.score}%, passed: {attempt.passed}"
        )

        if attempt.passed:
            CertificateTrigger.fire(attempt)

        return ExamSessionService._result_payload(attempt, already_completed=False)

    # =========================================================================
    # ATTEMPT QUERIES
    # =========================================================================

    @staticmethod
    def get_attempt(attempt_id: str, participant_id: str = None) -> Dict[str, Any]:
        """
        Get an attempt with its questions and captured answers.

        Used to resume an in-progress attempt after a reload.
        """
        attempt = ExamSessionService._get_attempt(attempt_id, participant_id)
        questions_by_id = QuestionBank.get_questions_by_id(attempt.exam_id, attempt.question_order)

        data = attempt.get_results()
        data.update({
            'time_limit_at': attempt.time_limit_at.isoformat() if attempt.time_limit_at else None,
            'remaining_seconds': CountdownController.remaining_seconds(attempt),
            'answers': attempt.answers,
            'questions': ExamSessionService._format_questions(attempt, questions_by_id),
        })
        return data

    @staticmethod
    def get_attempt_results(attempt_id: str, participant_id: str = None) -> Dict[str, Any]:
        """
        Get results of a completed attempt.

        Raises:
            InvalidStateError: The attempt is still in progress
        """
        attempt = ExamSessionService._get_attempt(attempt_id, participant_id)

        if not attempt.is_completed:
            raise InvalidStateError(
                detail="Attempt not yet completed",
                attempt_id=attempt.id,
                participant_id=participant_id,
            )

        return ExamSessionService._result_payload(attempt, already_completed=True)

    @staticmethod
    def get_time_remaining(attempt_id: str, participant_id: str = None) -> Dict[str, Any]:
        """Remaining time of an attempt, recomputed from the wall clock."""
        attempt = ExamSessionService._get_attempt(attempt_id, participant_id)
        remaining = CountdownController.remaining_seconds(attempt)

        return {
            'attempt_id': str(attempt.id),
            'status': attempt.status,
            'time_limit_at': attempt.time_limit_at.isoformat() if attempt.time_limit_at else None,
            'remaining_seconds': remaining,
            'expired': remaining == 0 and not attempt.is_completed,
        }

    @staticmethod
    def get_participant_attempts(participant_id: str, exam_id: str = None) -> QuerySet:
        """
        Get a participant's attempts, newest first.

        Args:
            participant_id: Participant ID
            exam_id: Optional exam filter

        Returns:
            QuerySet of attempts
        """
        queryset = ExamAttempt.objects.filter(participant_id=participant_id)

        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)

        return queryset.select_related('exam').order_by('-started_at')
