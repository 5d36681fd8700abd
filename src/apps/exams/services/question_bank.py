# src/apps/exams/services/question_bank.py
"""
Question Bank Accessor

Read-only access to exam configuration and the question bank. Store failures
surface as ``StoreUnavailableError`` so callers never see driver errors.
"""

import logging
from typing import Dict, List

from django.db import DatabaseError

from shared.common.exceptions import NotFoundError, StoreUnavailableError

from ..models import Exam, Question

logger = logging.getLogger(__name__)


class QuestionBank:
    """Accessor for exams and their questions."""

    @staticmethod
    def get_exam(exam_id: str) -> Exam:
        """
        Get an exam configuration.

        Raises:
            NotFoundError: Unknown exam
            StoreUnavailableError: The store could not be read
        """
        try:
            return Exam.objects.get(id=exam_id)
        except Exam.DoesNotExist:
            raise NotFoundError(detail=f"Exam {exam_id} not found", exam_id=exam_id)
        except DatabaseError as e:
            logger.error(f"Failed to load exam {exam_id}: {e}")
            raise StoreUnavailableError(exam_id=exam_id)

    @staticmethod
    def get_questions(exam_id: str) -> List[Question]:
        """
        Get the full bank of an exam in bank order.

        Returns:
            List of questions, empty when the bank is empty
        """
        try:
            return list(
                Question.objects.filter(exam_id=exam_id).order_by('order_index', 'created_at')
            )
        except DatabaseError as e:
            logger.error(f"Failed to load question bank for exam {exam_id}: {e}")
            raise StoreUnavailableError(exam_id=exam_id)

    @staticmethod
    def get_questions_by_id(exam_id: str, question_ids: List[str]) -> Dict[str, Question]:
        """
        Get authoritative records for the given questions.

        Questions missing from the bank are simply absent from the result.
        """
        try:
            questions = Question.objects.filter(exam_id=exam_id, id__in=question_ids)
            return {str(q.id): q for q in questions}
        except DatabaseError as e:
            logger.error(f"Failed to load questions for exam {exam_id}: {e}")
            raise StoreUnavailableError(exam_id=exam_id)
