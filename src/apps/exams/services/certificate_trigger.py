# src/apps/exams/services/certificate_trigger.py
"""
Certificate Trigger

Requests a certificate for a passing attempt from the certificate service.
Called only by the submission that completed the attempt, so a passing
attempt triggers at most one issuance from this service.
"""

import logging
from typing import Any, Optional

import httpx
from asgiref.sync import async_to_sync
from django.conf import settings
from django.db import DatabaseError

from shared.common.clients import CertificateServiceClient, CircuitBreakerError

from ..events.publishers import publish_certificate_issued
from ..models import ExamAttempt

logger = logging.getLogger(__name__)

MAX_CERTIFICATE_ID_LENGTH = ExamAttempt._meta.get_field('certificate_id').max_length


def is_issuance_enabled() -> bool:
    engine = getattr(settings, 'EXAM_ENGINE', {})
    return engine.get('CERTIFICATE_ISSUANCE_ENABLED', True)


def _extract_certificate_id(response: Any) -> Optional[str]:
    """Certificate id from an issuance response, None when there is none."""
    if not isinstance(response, dict):
        return None
    for key in ('certificate_id', 'certificateId', 'id'):
        value = response.get(key)
        if value not in (None, ''):
            certificate_id = str(value)
            return certificate_id if len(certificate_id) <= MAX_CERTIFICATE_ID_LENGTH else None
    return None


class CertificateTrigger:
    """Issues certificates for passing attempts."""

    _client: Optional[CertificateServiceClient] = None

    @classmethod
    def get_client(cls) -> CertificateServiceClient:
        # One client per process so the circuit breaker sees every call.
        if cls._client is None:
            cls._client = CertificateServiceClient()
        return cls._client

    @classmethod
    def fire(cls, attempt: ExamAttempt) -> Optional[str]:
        """
        Request a certificate for a completed attempt.

        Issuance failures are logged and stored on the attempt as
        ``certificate_error``; this covers unreachable services, malformed
        replies and failed bookkeeping writes. None of them is raised, and
        the completed attempt itself is left alone.

        Args:
            attempt: The attempt that was just completed

        Returns:
            The certificate id, or None when nothing was issued
        """
        if not attempt.passed:
            return None

        if not is_issuance_enabled():
            logger.info(f"Certificate issuance disabled, skipping attempt {attempt.id}")
            return None

        if attempt.certificate_id:
            logger.info(f"Attempt {attempt.id} already has certificate {attempt.certificate_id}")
            return str(attempt.certificate_id)

        client = cls.get_client()
        try:
            response = async_to_sync(client.issue_certificate)(
                participant_id=str(attempt.participant_id),
                exam_id=str(attempt.exam_id),
                attempt_id=str(attempt.id),
            )
        except (httpx.HTTPError, CircuitBreakerError, ValueError) as e:
            logger.error(f"Certificate issuance failed for attempt {attempt.id}: {e}")
            cls._record_failure(attempt, str(e) or type(e).__name__)
            return None

        certificate_id = _extract_certificate_id(response)
        if certificate_id is None:
            logger.error(f"Certificate service returned no usable id for attempt {attempt.id}: {response!r}")
            cls._record_failure(attempt, 'Certificate service response carried no certificate id')
            return None

        try:
            ExamAttempt.objects.filter(id=attempt.id).update(
                certificate_id=certificate_id,
                certificate_error='',
            )
        except DatabaseError as e:
            # The certificate exists remotely; a later call returns the same id.
            logger.error(f"Could not store certificate {certificate_id} for attempt {attempt.id}: {e}")
            attempt.certificate_error = f"Certificate {certificate_id} issued but not stored"
            return None

        attempt.certificate_id = certificate_id
        attempt.certificate_error = ''

        publish_certificate_issued(
            attempt_id=str(attempt.id),
            exam_id=str(attempt.exam_id),
            participant_id=str(attempt.participant_id),
            certificate_id=certificate_id,
        )

        logger.info(f"Issued certificate {certificate_id} for attempt {attempt.id}")
        return certificate_id

    @staticmethod
    def _record_failure(attempt: ExamAttempt, error: str) -> None:
        attempt.certificate_error = error
        try:
            ExamAttempt.objects.filter(id=attempt.id).update(certificate_error=error)
        except DatabaseError as e:
            logger.error(f"Could not record certificate failure for attempt {attempt.id}: {e}")
