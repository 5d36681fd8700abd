# src/apps/exams/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for all exam attempt tests. The Celery broker and
the certificate service are replaced for every test so nothing leaves the
process.
"""

import json
import uuid
from unittest.mock import MagicMock, patch

import httpx
import pytest
from rest_framework.test import APIClient

from shared.common.clients import CertificateServiceClient

from ..services import CertificateTrigger
from . import factories


# ==================== INFRASTRUCTURE FIXTURES ====================

@pytest.fixture(autouse=True)
def countdown_broker():
    """Stand-in for the broker behind countdown scheduling."""
    scheduled = MagicMock()
    scheduled.side_effect = lambda *args, **kwargs: MagicMock(id=f"task-{uuid.uuid4().hex[:12]}")

    with patch('apps.exams.tasks.expire_attempt.apply_async', scheduled) as apply_async, \
            patch('apps.exams.services.countdown.current_app') as celery_app:
        yield {'apply_async': apply_async, 'revoke': celery_app.control.revoke}


@pytest.fixture(autouse=True)
def certificate_service():
    """Certificate service answering every issuance with a fresh id."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json={
            'certificate_id': str(uuid.uuid4()),
            'attempt_id': body['attempt_id'],
        })

    CertificateTrigger._client = CertificateServiceClient(transport=httpx.MockTransport(handler))
    yield requests
    CertificateTrigger._client = None


@pytest.fixture
def api_client() -> APIClient:
    """Return a DRF API client instance."""
    return APIClient()


# ==================== DOMAIN FIXTURES ====================

@pytest.fixture
def participant_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def exam(db):
    return factories.create_exam()


@pytest.fixture
def timed_exam(db):
    return factories.create_exam(title='Timed Risk Assessment', time_limit_minutes=30)


@pytest.fixture
def bank(exam):
    return factories.create_bank(exam, 5)


@pytest.fixture
def authenticated_client(api_client, participant_id) -> APIClient:
    """API client carrying a participant bearer token."""
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {factories.make_token(participant_id)}')
    return api_client


@pytest.fixture
def manager_client(db) -> APIClient:
    """API client carrying a trainer bearer token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {factories.make_token(roles=["trainer"])}')
    return client
