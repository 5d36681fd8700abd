# src/apps/exams/models/question.py
"""
Question Models

Models for the per-exam question bank.
"""

import uuid
from typing import Dict, Any, List, Optional

from django.db import models

from .exam import Exam


class QuestionType(models.TextChoices):
    """Question type choices."""
    MULTIPLE_CHOICE = 'multiple_choice', 'Multiple Choice'
    OPEN_TEXT = 'open_text', 'Open Text'


class Question(models.Model):
    """
    Question model.

    Represents a question in an exam's bank.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    exam = models.ForeignKey(
        Exam,
        on_delete=models.CASCADE,
        related_name='questions'
    )

    # Question content
    question_text = models.TextField()
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        default=QuestionType.MULTIPLE_CHOICE
    )

    # Options (multiple choice only), letters are stable keys
    options = models.JSONField(default=dict, blank=True)
    # Example:
    # {"A": "Lift", "B": "Drag", "C": "Thrust", "D": "Weight"}

    # Correct answer: an option letter, or free text for open questions
    correct_answer = models.TextField()

    explanation = models.TextField(blank=True, default='')

    points = models.PositiveIntegerField(default=1)

    # Bank ordering only, never presentation order
    order_index = models.IntegerField(default=0)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_questions'
        ordering = ['exam', 'order_index']
        indexes = [
            models.Index(fields=['exam', 'order_index']),
        ]

    def __str__(self):
        text = self.question_text[:50]
        if len(self.question_text) > 50:
            text += '...'
        return f"{self.exam_id}: {text}"

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == QuestionType.MULTIPLE_CHOICE

    def get_for_attempt(
        self,
        frozen_options: Optional[Dict[str, str]] = None,
        letter_order: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Get question formatted for an attempt (without correct answer).

        Args:
            frozen_options: The letter to text mapping frozen on the attempt.
            letter_order: Presentation order of the letters. Letters missing
                from it follow in mapping order.
        """
        options = None
        if self.is_multiple_choice:
            mapping = frozen_options if frozen_options is not None else (self.options or {})
            options = [
                {'letter': letter, 'text': mapping[letter]}
                for letter in ordered_letters(mapping, letter_order)
            ]

        return {
            'id': str(self.id),
            'type': self.question_type,
            'text': self.question_text,
            'options': options,
            'points': self.points,
        }


def ordered_letters(mapping: Dict[str, str], letter_order: Optional[List[str]] = None) -> List[str]:
    """Letters of ``mapping`` in presentation order."""
    letters = [letter for letter in (letter_order or []) if letter in mapping]
    letters.extend(letter for letter in mapping if letter not in letters)
    return letters
