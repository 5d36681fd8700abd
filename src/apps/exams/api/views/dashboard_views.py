# src/apps/exams/api/views/dashboard_views.py
"""
Dashboard Views
"""

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ...services import AttemptStatisticsService


class ParticipantDashboardView(APIView):
    """Attempt totals for the current participant across all exams."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        dashboard = AttemptStatisticsService.participant_dashboard(
            participant_id=str(request.user.id)
        )
        return Response(dashboard)
