# src/apps/exams/api/views/attempt_views.py
"""
Attempt Views

ViewSet for a participant's own attempts.
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ...models import CompletionSource
from ...services import ExamSessionService, AttemptReviewService
from ..serializers import AnswerSerializer, ExamAttemptSerializer


class ExamAttemptViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for exam attempts.

    Handles answer capture, submission and review.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ExamAttemptSerializer

    def get_queryset(self):
        """Get the participant's exam attempts."""
        return ExamSessionService.get_participant_attempts(
            participant_id=str(self.request.user.id),
            exam_id=self.request.query_params.get('exam_id'),
        )

    def retrieve(self, request, *args, **kwargs):
        """Get an attempt with its questions and answers."""
        result = ExamSessionService.get_attempt(
            attempt_id=kwargs['pk'],
            participant_id=str(request.user.id)
        )
        return Response(result)

    @action(detail=True, methods=['post'])
    def answers(self, request, pk=None):
        """Capture an answer for a question."""
        serializer = AnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ExamSessionService.save_answer(
            attempt_id=pk,
            participant_id=str(request.user.id),
            question_id=str(serializer.validated_data['question_id']),
            answer=serializer.validated_data['answer'],
        )
        return Response(result)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """Submit the attempt for scoring."""
        result = ExamSessionService.submit(
            attempt_id=pk,
            participant_id=str(request.user.id),
            source=CompletionSource.MANUAL,
        )
        return Response(result)

    @action(detail=True, methods=['get'])
    def results(self, request, pk=None):
        """Get the results of a completed attempt."""
        result = ExamSessionService.get_attempt_results(
            attempt_id=pk,
            participant_id=str(request.user.id)
        )
        return Response(result)

    @action(detail=True, methods=['get'])
    def review(self, request, pk=None):
        """Review a completed attempt question by question."""
        review = AttemptReviewService.get_review(
            attempt_id=pk,
            participant_id=str(request.user.id)
        )
        return Response(review)

    @action(detail=True, methods=['get'], url_path='time-remaining')
    def time_remaining(self, request, pk=None):
        """Get the remaining time of the attempt."""
        result = ExamSessionService.get_time_remaining(
            attempt_id=pk,
            participant_id=str(request.user.id)
        )
        return Response(result)
