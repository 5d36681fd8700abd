# src/apps/exams/models/attempt.py
"""
Exam Attempt Models

Models for tracking exam attempts and their numbering.
"""

import uuid
from typing import Dict, Any

from django.db import models

from .exam import Exam


class CompletionSource(models.TextChoices):
    """How an attempt reached completion."""
    MANUAL = 'manual', 'Submitted by participant'
    TIMEOUT = 'timeout', 'Time limit reached'
    SWEEP = 'sweep', 'Closed by overdue sweep'


class ExamAttempt(models.Model):
    """
    Exam attempt model.

    Tracks a single attempt at an exam by a participant. ``completed_at`` being
    null means the attempt is in progress; once set the attempt is history.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # Relationships
    exam = models.ForeignKey(
        Exam,
        on_delete=models.PROTECT,
        related_name='attempts'
    )
    participant_id = models.UUIDField(db_index=True)

    # Attempt info
    attempt_number = models.PositiveIntegerField()

    # Timing
    started_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)
    time_limit_at = models.DateTimeField(null=True, blank=True)

    # Presentation snapshot taken at creation
    question_order = models.JSONField(default=list)
    # Example: ["question-uuid-1", "question-uuid-2"]

    option_orderings = models.JSONField(default=dict, blank=True)
    # Example: {"question-uuid-1": {"A": "Lift", "B": "Drag", "C": "Thrust"}}

    option_letter_order = models.JSONField(default=dict, blank=True)
    # Example: {"question-uuid-1": ["C", "A", "B"]}

    # Answers (question id -> submitted text)
    answers = models.JSONField(default=dict, blank=True)

    # Scoring
    score = models.PositiveSmallIntegerField(null=True, blank=True)
    passed = models.BooleanField(default=False)
    earned_points = models.PositiveIntegerField(default=0)
    total_points = models.PositiveIntegerField(default=0)
    correct_count = models.PositiveIntegerField(default=0)

    question_results = models.JSONField(default=dict, blank=True)
    # Example: {"question-uuid-1": {"correct": true, "points_earned": 2, "points_possible": 2}}

    completion_source = models.CharField(
        max_length=20,
        choices=CompletionSource.choices,
        blank=True,
        default=''
    )

    # Countdown timer handle
    countdown_task_id = models.CharField(max_length=255, blank=True, default='')

    # Certificate
    certificate_id = models.CharField(max_length=255, blank=True, default='')
    certificate_error = models.TextField(blank=True, default='')

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_attempts'
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'participant_id', 'attempt_number'],
                name='unique_exam_participant_attempt_number'
            )
        ]
        indexes = [
            models.Index(fields=['exam', 'participant_id']),
            models.Index(fields=['participant_id']),
            models.Index(fields=['completed_at']),
            models.Index(fields=['time_limit_at']),
        ]

    def __str__(self):
        return f"{self.exam_id} - Attempt {self.attempt_number} by {self.participant_id}"

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def answered_count(self) -> int:
        """Questions with a non-empty answer."""
        return sum(1 for value in self.answers.values() if value)

    @property
    def status(self) -> str:
        if not self.is_completed:
            return 'in_progress'
        return 'passed' if self.passed else 'failed'

    def get_results(self) -> Dict[str, Any]:
        """Get formatted attempt results."""
        return {
            'attempt_id': str(self.id),
            'exam_id': str(self.exam_id),
            'participant_id': str(self.participant_id),
            'attempt_number': self.attempt_number,
            'status': self.status,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'completion_source': self.completion_source or None,
            'total_questions': len(self.question_order),
            'answered_count': self.answered_count,
            'correct_count': self.correct_count,
            'earned_points': self.earned_points,
            'total_points': self.total_points,
            'score': self.score,
            'passed': self.passed,
            'certificate_id': self.certificate_id or None,
        }


class AttemptSequence(models.Model):
    """
    Numbering anchor for one (exam, participant) pair.

    Its row is locked while the next attempt number is reserved, so two
    concurrent session starts for the same pair are serialized.
    """

    exam = models.ForeignKey(
        Exam,
        on_delete=models.CASCADE,
        related_name='attempt_sequences'
    )
    participant_id = models.UUIDField()
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'exam_attempt_sequences'
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'participant_id'],
                name='unique_exam_participant_sequence'
            )
        ]

    def __str__(self):
        return f"{self.exam_id}/{self.participant_id}: {self.last_number}"
