# shared/common/permissions.py
"""
Role-Based Permission Classes

Roles come from the ``roles`` claim of the bearer token.
"""

import logging
from typing import List

from rest_framework import permissions
from rest_framework.request import Request
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class HasRole(permissions.BasePermission):
    """Grants access when the principal holds any of ``required_roles``."""

    required_roles: List[str] = []

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.has_any_role(self.required_roles):
            return True

        logger.info(
            f"Denied {request.method} {request.path} for {user}: "
            f"requires one of {self.required_roles}"
        )
        return False


class IsExamManager(HasRole):
    """Trainers and administrators, who may see group results"""
    required_roles = ['trainer', 'organization_admin', 'admin']
