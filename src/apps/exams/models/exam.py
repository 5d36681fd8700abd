# src/apps/exams/models/exam.py
"""
Exam Models

Exam configuration owned by the exam author. Read-only from the point of view
of an attempt.
"""

import uuid

from django.db import models


class Exam(models.Model):
    """
    Exam model.

    Holds the rules every attempt is run against: passing threshold, time
    limit, attempt ceiling and how many questions each attempt draws.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    organization_id = models.UUIDField(null=True, blank=True, db_index=True)

    # Identification
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')

    # Passing criteria (integer percent 0..100)
    passing_score = models.PositiveSmallIntegerField(default=70)

    # Time settings; null or 0 means untimed
    time_limit_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Attempts
    max_attempts = models.PositiveIntegerField(default=1)

    # Question count; null or 0 means every question in the bank
    questions_per_exam = models.PositiveIntegerField(null=True, blank=True)

    # Randomization
    randomize_options = models.BooleanField(default=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exams'
        ordering = ['title']

    def __str__(self):
        return self.title

    @property
    def is_timed(self) -> bool:
        return bool(self.time_limit_minutes)
