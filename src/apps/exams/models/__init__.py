# src/apps/exams/models/__init__.py
"""
Exam Attempt Service Models

Database models for exams, their question banks and attempts.
"""

from .exam import Exam
from .question import Question, QuestionType, ordered_letters
from .attempt import ExamAttempt, AttemptSequence, CompletionSource

__all__ = [
    # Exam
    'Exam',
    # Question
    'Question',
    'QuestionType',
    'ordered_letters',
    # Attempt
    'ExamAttempt',
    'AttemptSequence',
    'CompletionSource',
]
