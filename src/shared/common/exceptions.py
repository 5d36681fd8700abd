# shared/common/exceptions.py
"""
Custom Exception Classes and Exception Handler

Every error the attempt engine raises is an ``APIException`` subclass so the
REST layer renders it in one envelope, while service callers can still catch
the specific kind and read its context from ``extra_data``.
"""

import logging
from typing import Dict, Any, Optional

from rest_framework import status
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import APIException
from django.core.exceptions import ValidationError as DjangoValidationError
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

class BaseAPIException(APIException):
    """Base exception class for all custom API exceptions"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An unexpected error occurred.'
    default_code = 'error'
    error_code = 'INTERNAL_ERROR'

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        error_code: Optional[str] = None,
        extra_data: Optional[Dict] = None
    ):
        super().__init__(detail=detail, code=code)
        self.error_code = error_code or self.error_code
        self.extra_data = extra_data or {}

    def __str__(self) -> str:
        return str(self.detail)


def _context(**ids: Any) -> Dict[str, str]:
    """Keep only the identifiers that are known, as strings."""
    return {key: str(value) for key, value in ids.items() if value is not None}


# =============================================================================
# ATTEMPT ENGINE ERRORS
# =============================================================================

class InvalidStateError(BaseAPIException):
    """Operation attempted against an attempt not in the expected state."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The attempt is not in a state that allows this operation.'
    default_code = 'invalid_state'
    error_code = 'INVALID_STATE'

    def __init__(
        self,
        detail: str = None,
        attempt_id: Any = None,
        exam_id: Any = None,
        participant_id: Any = None,
    ):
        super().__init__(
            detail=detail,
            extra_data=_context(
                attempt_id=attempt_id,
                exam_id=exam_id,
                participant_id=participant_id,
            ),
        )


class AttemptLimitExceededError(BaseAPIException):
    """Session creation refused because the attempt ceiling is reached."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Maximum number of attempts reached.'
    default_code = 'attempt_limit_exceeded'
    error_code = 'ATTEMPT_LIMIT_EXCEEDED'

    def __init__(
        self,
        exam_id: Any,
        participant_id: Any,
        attempts_used: int,
        max_attempts: int,
        detail: str = None,
    ):
        super().__init__(
            detail=detail or (
                f"Maximum attempts reached for exam {exam_id}: "
                f"{attempts_used}/{max_attempts}"
            ),
            extra_data={
                **_context(exam_id=exam_id, participant_id=participant_id),
                'attempts_used': attempts_used,
                'max_attempts': max_attempts,
            },
        )
        self.attempts_used = attempts_used
        self.max_attempts = max_attempts


class NotFoundError(BaseAPIException):
    """Exam, question or attempt missing."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'The requested resource was not found.'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'

    def __init__(
        self,
        detail: str = None,
        exam_id: Any = None,
        attempt_id: Any = None,
        question_id: Any = None,
        participant_id: Any = None,
    ):
        super().__init__(
            detail=detail,
            extra_data=_context(
                exam_id=exam_id,
                attempt_id=attempt_id,
                question_id=question_id,
                participant_id=participant_id,
            ),
        )


class StoreUnavailableError(BaseAPIException):
    """External store I/O failure."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The attempt store is temporarily unavailable.'
    default_code = 'store_unavailable'
    error_code = 'STORE_UNAVAILABLE'

    def __init__(
        self,
        detail: str = None,
        exam_id: Any = None,
        attempt_id: Any = None,
        participant_id: Any = None,
    ):
        super().__init__(
            detail=detail,
            extra_data=_context(
                exam_id=exam_id,
                attempt_id=attempt_id,
                participant_id=participant_id,
            ),
        )


# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

STATUS_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'UNAUTHORIZED',
    status.HTTP_403_FORBIDDEN: 'FORBIDDEN',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'METHOD_NOT_ALLOWED',
}


def _envelope(code: str, message: str, request_id: Optional[str], details: Any = None) -> Dict[str, Any]:
    error = {'code': code, 'message': message, 'request_id': request_id}
    if details:
        error['details'] = details
    return {'success': False, 'error': error}


def _message(detail: Any) -> str:
    """First human-readable message out of a DRF error detail."""
    if isinstance(detail, dict):
        if 'detail' in detail:
            return str(detail['detail'])
        return 'Validation error'
    if isinstance(detail, list):
        return str(detail[0]) if detail else 'Validation error'
    return str(detail)


def custom_exception_handler(exc, context) -> Optional[Response]:
    """
    DRF exception handler rendering every error in one envelope:
    ``{'success': False, 'error': {code, message, details, request_id}}``.

    ``details`` carries the exception's ``extra_data`` for engine errors and
    the field errors for serializer validation failures.
    """
    request = context.get('request')
    request_id = request.headers.get('X-Request-ID') if request is not None else None

    if isinstance(exc, DjangoValidationError):
        # Raised by the ORM for malformed ids such as a non-UUID primary key
        details = exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages}
        return Response(
            _envelope('VALIDATION_ERROR', 'Validation error', request_id, details),
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)

    if response is None:
        logger.exception(
            f"Unhandled exception: {exc}",
            extra={'request_id': request_id, 'exception_type': type(exc).__name__},
        )
        message = str(exc) if settings.DEBUG else 'An unexpected error occurred. Please try again later.'
        return Response(
            _envelope('INTERNAL_ERROR', message, request_id),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    code = getattr(exc, 'error_code', None) or STATUS_ERROR_CODES.get(response.status_code, 'ERROR')
    details = getattr(exc, 'extra_data', None)
    if not details and isinstance(response.data, dict) and 'detail' not in response.data:
        details = response.data

    response.data = _envelope(code, _message(getattr(exc, 'detail', response.data)), request_id, details)
    return response
