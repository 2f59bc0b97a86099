"""
Webhook notifications for job completion.

Delivery is best-effort: a single POST, no retries. ``notify`` never raises;
failures are logged and reported as ``False`` so the lifecycle engine can
record them on the job.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol

import httpx

from . import __version__
from .errors import DeliveryError
from .models import Job, utcnow

log = logging.getLogger("notifier")

USER_AGENT = f"JobScheduler/{__version__}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_completion_payload(job: Job) -> dict[str, Any]:
    return {
        "event": "job.completed",
        "timestamp": utcnow().isoformat(),
        "job": {
            "id": job.id,
            "taskName": job.task_name,
            "priority": job.priority.value,
            "status": job.status.value,
            "payload": job.payload,
            "createdAt": _iso(job.created_at),
            "completedAt": _iso(job.completed_at),
        },
    }


def build_test_payload(environment: str) -> dict[str, Any]:
    now = utcnow().isoformat()
    return {
        "event": "test",
        "timestamp": now,
        "message": "This is a test webhook from Job Scheduler",
        "job": {
            "id": 999,
            "taskName": "Test Job",
            "status": "completed",
            "priority": "High",
            "createdAt": now,
            "completedAt": now,
        },
        "system": {
            "version": __version__,
            "environment": environment,
        },
    }


@dataclass
class DeliveryReceipt:
    status_code: int
    webhook_url: str
    timestamp: datetime


class Notifier(Protocol):
    def notify(self, job: Job) -> bool:
        ...

    def send_test(self) -> DeliveryReceipt:
        ...


class WebhookNotifier:
    """Posts JSON notifications to a single configured webhook URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        environment: str = "production",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.environment = environment
        self._transport = transport

    def _post(self, payload: dict[str, Any], event: str, job_id: Optional[int] = None) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Event": event,
        }
        if job_id is not None:
            headers["X-Job-ID"] = str(job_id)

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            response = client.post(self.url, json=payload, headers=headers)
        if not 200 <= response.status_code < 300:
            raise DeliveryError(f"HTTP {response.status_code}: {response.text[:200]}")
        return response

    def notify(self, job: Job) -> bool:
        """
        Send the ``job.completed`` notification for ``job``.

        Returns:
            True if the endpoint answered 2xx, False otherwise
        """
        payload = build_completion_payload(job)
        log.info(f"sending webhook to {self.url}", extra={"job_id": job.id, "event": "webhook_sending"})
        try:
            response = self._post(payload, "job.completed", job.id)
        except DeliveryError as e:
            log.warning(f"webhook rejected: {e.message}", extra={"job_id": job.id, "event": "webhook_failed"})
            return False
        except httpx.TimeoutException:
            log.warning(f"webhook timeout after {self.timeout}s", extra={"job_id": job.id, "event": "webhook_failed"})
            return False
        except httpx.HTTPError as e:
            log.warning(f"webhook request error: {e}", extra={"job_id": job.id, "event": "webhook_failed"})
            return False
        except Exception:
            log.error("webhook unexpected error", extra={"job_id": job.id, "event": "webhook_failed"}, exc_info=True)
            return False

        log.info(
            f"webhook sent (status={response.status_code})",
            extra={"job_id": job.id, "event": "webhook_sent"},
        )
        return True

    def send_test(self) -> DeliveryReceipt:
        """
        Send a synthetic job-shaped notification.

        Raises:
            DeliveryError: the POST failed or answered non-2xx
        """
        payload = build_test_payload(self.environment)
        try:
            response = self._post(payload, "test")
        except DeliveryError:
            log.warning("test webhook rejected", extra={"event": "test_webhook_failed"})
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.warning(f"test webhook request error: {e}", extra={"event": "test_webhook_failed"})
            raise DeliveryError(str(e) or e.__class__.__name__) from e

        log.info(f"test webhook sent (status={response.status_code})", extra={"event": "test_webhook_sent"})
        return DeliveryReceipt(status_code=response.status_code, webhook_url=self.url, timestamp=utcnow())
