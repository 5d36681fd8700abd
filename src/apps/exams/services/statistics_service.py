# src/apps/exams/services/statistics_service.py
"""
Attempt Statistics Service

Per-participant and group-level summaries of exam attempts. Only completed
attempts feed scores and pass/fail figures; in-progress attempts are counted
separately and never affect them.
"""

import logging
import uuid
from typing import Dict, Any, Iterable, List, Optional

from django.db.models import Avg

from ..models import ExamAttempt
from .question_bank import QuestionBank

logger = logging.getLogger(__name__)


def _score_bucket(score: int) -> str:
    if score >= 90:
        return '90-100'
    elif score >= 80:
        return '80-89'
    elif score >= 70:
        return '70-79'
    elif score >= 60:
        return '60-69'
    return 'below_60'


def _summarize(attempts: List[ExamAttempt], max_attempts: int) -> Dict[str, Any]:
    """Summary of one participant's attempts at one exam."""
    completed = [a for a in attempts if a.is_completed]
    in_progress_count = len(attempts) - len(completed)

    best_score = max((a.score or 0 for a in completed), default=0)
    passed = any(a.passed for a in completed)
    last_completed = max((a.completed_at for a in completed), default=None)

    if completed:
        status = 'passed' if passed else 'failed'
    elif in_progress_count:
        status = 'in_progress'
    else:
        status = 'not_started'

    return {
        'status': status,
        'completed_attempts': len(completed),
        'in_progress_attempts': in_progress_count,
        'best_score': best_score,
        'passed': passed,
        'last_completed_at': last_completed.isoformat() if last_completed else None,
        'attempts_remaining': max(0, max_attempts - len(completed)),
        'can_start': len(completed) < max_attempts,
    }


class AttemptStatisticsService:
    """Aggregated views over exam attempts."""

    @staticmethod
    def participant_summary(exam_id: str, participant_id: str) -> Dict[str, Any]:
        """
        Summary of a participant's attempts at one exam.

        Args:
            exam_id: Exam ID
            participant_id: Participant ID

        Returns:
            Summary with best score, pass state and attempts remaining
        """
        exam = QuestionBank.get_exam(exam_id)
        attempts = list(
            ExamAttempt.objects.filter(exam=exam, participant_id=participant_id)
        )

        summary = _summarize(attempts, exam.max_attempts)
        summary.update({
            'exam_id': str(exam.id),
            'participant_id': str(participant_id),
            'max_attempts': exam.max_attempts,
        })
        return summary

    @staticmethod
    def exam_statistics(
        exam_id: str,
        participant_ids: Optional[Iterable[str]] = None
    ) -> Dict[str, Any]:
        """
        Group-level statistics for an exam.

        Args:
            exam_id: Exam ID
            participant_ids: Restrict to these participants, e.g. the members
                of a group. Members without attempts count as not started.
                When omitted, everyone with an attempt is included.

        Returns:
            Statistics dictionary
        """
        exam = QuestionBank.get_exam(exam_id)

        attempts = ExamAttempt.objects.filter(exam=exam)
        if participant_ids is not None:
            participant_ids = list(dict.fromkeys(str(uuid.UUID(str(p))) for p in participant_ids))
            attempts = attempts.filter(participant_id__in=participant_ids)

        by_participant: Dict[str, List[ExamAttempt]] = {}
        for attempt in attempts.order_by('participant_id', 'attempt_number'):
            by_participant.setdefault(str(attempt.participant_id), []).append(attempt)

        if participant_ids is None:
            participant_ids = list(by_participant)

        participants = []
        status_counts = {'passed': 0, 'failed': 0, 'in_progress': 0, 'not_started': 0}
        for participant_id in participant_ids:
            summary = _summarize(by_participant.get(participant_id, []), exam.max_attempts)
            summary['participant_id'] = participant_id
            status_counts[summary['status']] += 1
            participants.append(summary)

        completed = attempts.filter(completed_at__isnull=False)
        total_completed = completed.count()
        passed_attempts = completed.filter(passed=True).count()
        avg_score = completed.aggregate(avg_score=Avg('score'))['avg_score']

        score_ranges = {
            '90-100': 0,
            '80-89': 0,
            '70-79': 0,
            '60-69': 0,
            'below_60': 0
        }
        for score in completed.values_list('score', flat=True):
            score_ranges[_score_bucket(score or 0)] += 1

        return {
            'exam_id': str(exam.id),
            'exam_title': exam.title,
            'passing_score': exam.passing_score,
            'max_attempts': exam.max_attempts,
            'participant_count': len(participants),
            'passed_count': status_counts['passed'],
            'failed_count': status_counts['failed'],
            'in_progress_count': status_counts['in_progress'],
            'not_started_count': status_counts['not_started'],
            'completed_attempts': total_completed,
            'pass_rate': round(passed_attempts / total_completed * 100, 2) if total_completed else 0,
            'average_score': round(float(avg_score), 2) if avg_score is not None else 0,
            'score_distribution': score_ranges,
            'participants': participants,
        }

    @staticmethod
    def participant_dashboard(participant_id: str) -> Dict[str, Any]:
        """
        Totals across every exam a participant has attempted.

        Returns:
            Passed, failed and in-progress attempt counts plus a per-exam list
        """
        attempts = list(
            ExamAttempt.objects.filter(participant_id=participant_id)
            .select_related('exam')
            .order_by('exam_id', 'attempt_number')
        )

        by_exam: Dict[str, List[ExamAttempt]] = {}
        for attempt in attempts:
            by_exam.setdefault(str(attempt.exam_id), []).append(attempt)

        exams = []
        for exam_attempts in by_exam.values():
            exam = exam_attempts[0].exam
            summary = _summarize(exam_attempts, exam.max_attempts)
            summary.update({'exam_id': str(exam.id), 'exam_title': exam.title})
            exams.append(summary)

        return {
            'participant_id': str(participant_id),
            'passed_attempts': sum(1 for a in attempts if a.is_completed and a.passed),
            'failed_attempts': sum(1 for a in attempts if a.is_completed and not a.passed),
            'in_progress_attempts': sum(1 for a in attempts if not a.is_completed),
            'exams': exams,
        }
