# src/apps/exams/services/__init__.py
"""
Exam Attempt Business Logic

Service layer for running, scoring and reporting on exam attempts.
"""

from .question_bank import QuestionBank
from .question_selector import Selection, select_questions
from .scoring import ScoreResult, is_answer_correct, calculate_score, score_attempt
from .attempt_ledger import AttemptLedger
from .countdown import CountdownController
from .certificate_trigger import CertificateTrigger
from .session_service import ExamSessionService
from .statistics_service import AttemptStatisticsService
from .review_service import AttemptReviewService

__all__ = [
    'QuestionBank',
    'Selection',
    'select_questions',
    'ScoreResult',
    'is_answer_correct',
    'calculate_score',
    'score_attempt',
    'AttemptLedger',
    'CountdownController',
    'CertificateTrigger',
    'ExamSessionService',
    'AttemptStatisticsService',
    'AttemptReviewService',
]
