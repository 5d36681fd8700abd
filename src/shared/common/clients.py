# shared/common/clients.py
"""
Service Clients for Inter-Service Communication

Async httpx clients for the platform services this service calls. Every
client owns a circuit breaker, so a collaborator that keeps failing is left
alone for a while instead of slowing down each request that touches it.
"""

import time
import logging
from typing import Dict, Any, Optional

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

class CircuitBreakerError(Exception):
    """Raised instead of calling a service whose circuit is open."""

    def __init__(self, service_name: str):
        super().__init__(f"Circuit breaker open for {service_name}")
        self.service_name = service_name


class CircuitBreaker:
    """
    Failure counter guarding one downstream service.

    ``closed``: calls go through and consecutive failures are counted.
    ``open``: calls are refused until ``reset_after`` seconds have passed.
    ``half_open``: trial calls go through; ``probe_successes`` successes close
    the circuit again and any failure re-opens it.

    One instance is shared by the whole worker process: it lives on the
    client cached in ``CertificateTrigger._client``. The counters are updated
    without a lock, so under threaded workers the counts are best-effort and
    a few extra trial calls may slip through while the state changes.
    """

    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half_open'

    def __init__(
        self,
        service_name: str,
        max_failures: int = 5,
        reset_after: float = 30.0,
        probe_successes: int = 2
    ):
        self.service_name = service_name
        self.max_failures = max_failures
        self.reset_after = reset_after
        self.probe_successes = probe_successes

        self.state = self.CLOSED
        self.failures = 0
        self.probes_passed = 0
        self.opened_at: Optional[float] = None

    def allow(self) -> bool:
        if self.state == self.OPEN:
            if time.monotonic() - self.opened_at < self.reset_after:
                return False
            self.state = self.HALF_OPEN
            self.probes_passed = 0
            logger.info(f"Circuit for {self.service_name} half-open, probing")
        return True

    def succeeded(self) -> None:
        if self.state != self.HALF_OPEN:
            self.failures = 0
            return

        self.probes_passed += 1
        if self.probes_passed >= self.probe_successes:
            self.state = self.CLOSED
            self.failures = 0
            self.opened_at = None
            logger.info(f"Circuit for {self.service_name} closed")

    def failed(self) -> None:
        self.failures += 1
        if self.state == self.HALF_OPEN or self.failures >= self.max_failures:
            self.state = self.OPEN
            self.opened_at = time.monotonic()
            logger.warning(
                f"Circuit for {self.service_name} opened after {self.failures} failures"
            )


# =============================================================================
# BASE SERVICE CLIENT
# =============================================================================

class ServiceClient:
    """
    JSON-over-HTTP client for one platform service.

    The base URL comes from ``settings.SERVICE_URLS`` unless given. Tests pass
    an ``httpx`` transport to keep requests in-process.
    """

    service_name: str = ''

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        service_urls = getattr(settings, 'SERVICE_URLS', {})
        self.base_url = base_url or service_urls.get(self.service_name, f'http://{self.service_name}:8000')
        self.transport = transport
        self.timeout = httpx.Timeout(10.0, connect=5.0)
        self.breaker = CircuitBreaker(self.service_name)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            'Accept': 'application/json',
            'X-Service-Auth': getattr(settings, 'SERVICE_AUTH_TOKEN', ''),
            'X-Source-Service': getattr(settings, 'SERVICE_NAME', 'exam-attempt-service'),
        }
        headers.update(extra or {})
        return headers

    async def request_json(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Send a request and decode the JSON response.

        Transport errors and 5xx answers count against the circuit breaker;
        4xx answers are the caller's fault and do not.

        Raises:
            CircuitBreakerError: The circuit is open, nothing was sent
            httpx.HTTPError: The request failed or returned an error status
            ValueError: The response body is not JSON
        """
        if not self.breaker.allow():
            raise CircuitBreakerError(self.service_name)

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(method, path, json=payload, headers=self._headers(headers))
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.error(f"{self.service_name} answered {status_code} for {method} {path}")
                if status_code >= 500:
                    self.breaker.failed()
                raise
            except httpx.TransportError as e:
                logger.error(f"{self.service_name} unreachable for {method} {path}: {e}")
                self.breaker.failed()
                raise

        self.breaker.succeeded()
        return response.json()


# =============================================================================
# CERTIFICATE SERVICE
# =============================================================================

class CertificateServiceClient(ServiceClient):
    """Client for the certificate service"""

    service_name = 'certificate-service'

    async def issue_certificate(
        self,
        participant_id: str,
        exam_id: str,
        attempt_id: str,
    ) -> Dict[str, Any]:
        """
        Request a certificate for a passing exam attempt.

        The certificate service deduplicates on the idempotency key, so
        repeating the call for one attempt returns the same certificate.
        """
        return await self.request_json(
            'POST',
            '/api/v1/certificates/exam-attempts/',
            payload={
                'participant_id': participant_id,
                'exam_id': exam_id,
                'attempt_id': attempt_id,
            },
            headers={'Idempotency-Key': f'exam-attempt:{attempt_id}'},
        )
