# src/apps/exams/services/review_service.py
"""
Attempt Review Service

Replays a completed attempt exactly as the participant saw it: the frozen
question order and the frozen option mapping, never the current bank layout.
"""

import logging
from typing import Dict, Any, Optional

from django.db import DatabaseError

from shared.common.exceptions import InvalidStateError, NotFoundError, StoreUnavailableError

from ..models import ExamAttempt, QuestionType, ordered_letters
from .question_bank import QuestionBank
from .scoring import is_answer_correct

logger = logging.getLogger(__name__)


def _render_choice(letter: Optional[str], options: Dict[str, str]) -> Optional[str]:
    """Render a multiple-choice letter as ``"<letter>. <text>"``."""
    if not letter:
        return None
    text = options.get(letter)
    if text is None:
        return letter
    return f"{letter}. {text}"


class AttemptReviewService:
    """Question-by-question review of completed attempts."""

    @staticmethod
    def get_review(attempt_id: str, participant_id: str = None) -> Dict[str, Any]:
        """
        Build the review of a completed attempt.

        Questions deleted from the bank since the attempt are still listed,
        with their text marked unavailable and correctness taken from the
        stored per-question results.

        Args:
            attempt_id: Attempt ID
            participant_id: Optional participant ID for ownership check

        Returns:
            Review with one entry per question in presentation order

        Raises:
            NotFoundError: Unknown attempt
            InvalidStateError: The attempt is still in progress
            StoreUnavailableError: The attempt could not be loaded
        """
        filters = {'id': attempt_id}
        if participant_id:
            filters['participant_id'] = participant_id

        try:
            attempt = ExamAttempt.objects.select_related('exam').get(**filters)
        except ExamAttempt.DoesNotExist:
            raise NotFoundError(
                detail=f"Attempt {attempt_id} not found",
                attempt_id=attempt_id,
                participant_id=participant_id,
            )
        except DatabaseError as e:
            logger.error(f"Failed to load attempt {attempt_id} for review: {e}")
            raise StoreUnavailableError(attempt_id=attempt_id, participant_id=participant_id)

        if not attempt.is_completed:
            raise InvalidStateError(
                detail="Only completed attempts can be reviewed",
                attempt_id=attempt.id,
                participant_id=participant_id,
            )

        questions_by_id = QuestionBank.get_questions_by_id(attempt.exam_id, attempt.question_order)

        items = []
        for index, question_id in enumerate(attempt.question_order):
            question = questions_by_id.get(question_id)
            answer = attempt.answers.get(question_id, '')
            stored = attempt.question_results.get(question_id, {})

            if question is None:
                logger.debug(f"Question {question_id} of attempt {attempt.id} no longer in bank")
                items.append({
                    'order': index + 1,
                    'question_id': question_id,
                    'available': False,
                    'question_text': None,
                    'question_type': None,
                    'options': None,
                    'your_answer': answer or None,
                    'correct_answer': None,
                    'is_correct': stored.get('correct', False),
                    'points_earned': stored.get('points_earned', 0),
                    'points_possible': stored.get('points_possible', 0),
                    'explanation': None,
                })
                continue

            options = None
            your_answer = answer or None
            correct_answer = question.correct_answer
            if question.question_type == QuestionType.MULTIPLE_CHOICE:
                frozen = attempt.option_orderings.get(question_id) or question.options or {}
                letters = ordered_letters(frozen, attempt.option_letter_order.get(question_id))
                options = [{'letter': letter, 'text': frozen[letter]} for letter in letters]
                your_answer = _render_choice(answer, frozen)
                correct_answer = _render_choice(question.correct_answer, frozen)

            if stored:
                is_correct = stored.get('correct', False)
                points_earned = stored.get('points_earned', 0)
            else:
                is_correct = is_answer_correct(question.question_type, question.correct_answer, answer)
                points_earned = question.points if is_correct else 0

            items.append({
                'order': index + 1,
                'question_id': question_id,
                'available': True,
                'question_text': question.question_text,
                'question_type': question.question_type,
                'options': options,
                'your_answer': your_answer,
                'correct_answer': correct_answer,
                'is_correct': is_correct,
                'points_earned': points_earned,
                'points_possible': question.points,
                'explanation': question.explanation or None,
            })

        review = attempt.get_results()
        review.update({
            'exam_title': attempt.exam.title,
            'passing_score': attempt.exam.passing_score,
            'questions': items,
        })
        return review
