# src/apps/exams/services/scoring.py
"""
Scoring Engine

Pure functions that grade an attempt against authoritative question records.
Nothing here touches the database, so the same inputs always give the same
score.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Mapping, Optional

from shared.common.exceptions import NotFoundError

from ..models import QuestionType

logger = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    """Outcome of grading one attempt."""
    score: int
    passed: bool
    earned_points: int
    total_points: int
    correct_count: int
    question_results: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def is_answer_correct(question_type: str, correct_answer: str, answer: Optional[str]) -> bool:
    """
    Check one captured answer.

    Multiple-choice answers must equal the correct letter exactly. Open-text
    answers match after trimming and lower-casing both sides. An empty or
    missing answer is never correct.
    """
    if answer is None or answer == '':
        return False

    if question_type == QuestionType.MULTIPLE_CHOICE:
        return answer == correct_answer

    if question_type == QuestionType.OPEN_TEXT:
        normalized = answer.strip().lower()
        if not normalized:
            return False
        return normalized == (correct_answer or '').strip().lower()

    logger.warning(f"Unknown question type during scoring: {question_type}")
    return False


def calculate_score(earned_points: int, total_points: int) -> int:
    """Integer percent, rounded half up. A zero-point attempt scores 0."""
    if total_points <= 0:
        return 0

    percent = Decimal(earned_points) * 100 / Decimal(total_points)
    return int(percent.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def score_attempt(
    question_order: List[str],
    answers: Mapping[str, str],
    questions_by_id: Mapping[str, Any],
    passing_score: int,
) -> ScoreResult:
    """
    Grade an attempt over its frozen question order.

    Args:
        question_order: Question ids shown in this attempt
        answers: Captured answers keyed by question id
        questions_by_id: Authoritative question records keyed by id (str)
        passing_score: Threshold percent, inclusive

    Returns:
        ScoreResult

    Raises:
        NotFoundError: A question of the attempt is missing from the bank
    """
    earned_points = 0
    total_points = 0
    correct_count = 0
    question_results = {}

    for question_id in question_order:
        question = questions_by_id.get(str(question_id))
        if question is None:
            raise NotFoundError(
                detail=f"Question {question_id} is no longer in the bank",
                question_id=question_id,
            )

        total_points += question.points
        correct = is_answer_correct(
            question.question_type,
            question.correct_answer,
            answers.get(str(question_id)),
        )

        points_earned = question.points if correct else 0
        earned_points += points_earned
        if correct:
            correct_count += 1

        question_results[str(question_id)] = {
            'correct': correct,
            'points_earned': points_earned,
            'points_possible': question.points,
        }

    score = calculate_score(earned_points, total_points)

    return ScoreResult(
        score=score,
        passed=score >= passing_score,
        earned_points=earned_points,
        total_points=total_points,
        correct_count=correct_count,
        question_results=question_results,
    )
