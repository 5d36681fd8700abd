# src/apps/exams/api/serializers/attempt_serializers.py
"""
Attempt Serializers

Serializers for attempt requests and listings.
"""

from rest_framework import serializers

from ...models import ExamAttempt


class AnswerSerializer(serializers.Serializer):
    """Serializer for capturing an answer."""

    question_id = serializers.UUIDField()
    answer = serializers.CharField(allow_blank=True, allow_null=True, trim_whitespace=False)


class ExamStatisticsQuerySerializer(serializers.Serializer):
    """Query parameters for group statistics."""

    participant_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        allow_empty=True,
    )


class ExamAttemptSerializer(serializers.ModelSerializer):
    """Serializer for exam attempt list."""

    exam_title = serializers.CharField(source='exam.title', read_only=True)
    status = serializers.ReadOnlyField()
    is_completed = serializers.ReadOnlyField()
    total_questions = serializers.SerializerMethodField()

    class Meta:
        model = ExamAttempt
        fields = [
            'id',
            'exam',
            'exam_title',
            'participant_id',
            'attempt_number',
            'status',
            'is_completed',
            'started_at',
            'completed_at',
            'time_limit_at',
            'completion_source',
            'total_questions',
            'total_points',
            'earned_points',
            'correct_count',
            'score',
            'passed',
            'certificate_id',
        ]
        read_only_fields = fields

    def get_total_questions(self, obj) -> int:
        return len(obj.question_order)
