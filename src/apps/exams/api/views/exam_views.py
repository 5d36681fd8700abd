# src/apps/exams/api/views/exam_views.py
"""
Exam Views

Exam-scoped endpoints: starting a session and attempt summaries.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from shared.common.permissions import IsExamManager

from ...services import ExamSessionService, AttemptStatisticsService
from ..serializers import ExamStatisticsQuerySerializer


class ExamViewSet(viewsets.ViewSet):
    """
    ViewSet for exam sessions.

    The authenticated principal is the participant.
    """

    permission_classes = [IsAuthenticated]

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Start an exam attempt."""
        result = ExamSessionService.start_session(
            exam_id=pk,
            participant_id=str(request.user.id)
        )
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        """Get the current participant's attempt summary for this exam."""
        summary = AttemptStatisticsService.participant_summary(
            exam_id=pk,
            participant_id=str(request.user.id)
        )
        return Response(summary)

    @action(detail=True, methods=['get'], permission_classes=[IsExamManager])
    def statistics(self, request, pk=None):
        """Get group statistics for this exam."""
        serializer = ExamStatisticsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        stats = AttemptStatisticsService.exam_statistics(
            exam_id=pk,
            participant_ids=serializer.validated_data.get('participant_ids')
        )
        return Response(stats)
