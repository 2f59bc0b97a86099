import json

import httpx
import pytest

from jobscheduler.errors import DeliveryError
from jobscheduler.models import JobStatus, utcnow
from jobscheduler.notifier import WebhookNotifier, build_completion_payload
from jobscheduler.store import InMemoryJobStore

URL = "http://hooks.test/endpoint"


@pytest.fixture
def completed_job():
    store = InMemoryJobStore()
    job = store.create("Send Email", priority="High", payload={"email": "test@example.com"})

    def finish(j):
        j.status = JobStatus.completed
        j.completed_at = utcnow()

    return store.update(job.id, finish)


def recording_transport(status_code=200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 300})

    return httpx.MockTransport(handler), requests


def test_completion_payload_shape(completed_job):
    payload = build_completion_payload(completed_job)
    assert payload["event"] == "job.completed"
    assert payload["timestamp"]
    assert payload["job"] == {
        "id": completed_job.id,
        "taskName": "Send Email",
        "priority": "High",
        "status": "completed",
        "payload": {"email": "test@example.com"},
        "createdAt": completed_job.created_at.isoformat(),
        "completedAt": completed_job.completed_at.isoformat(),
    }


def test_notify_posts_json_once(completed_job):
    transport, requests = recording_transport(200)
    notifier = WebhookNotifier(URL, transport=transport)

    assert notifier.notify(completed_job) is True
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["content-type"] == "application/json"
    assert request.headers["x-job-id"] == str(completed_job.id)
    body = json.loads(request.content)
    assert body["event"] == "job.completed"
    assert body["job"]["id"] == completed_job.id


@pytest.mark.parametrize("status_code", [400, 404, 500, 503])
def test_notify_non_2xx_is_failure_without_retry(completed_job, status_code):
    transport, requests = recording_transport(status_code)
    notifier = WebhookNotifier(URL, transport=transport)

    assert notifier.notify(completed_job) is False
    assert len(requests) == 1


def test_notify_network_error_is_failure(completed_job):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    notifier = WebhookNotifier(URL, transport=httpx.MockTransport(handler))
    assert notifier.notify(completed_job) is False


def test_notify_timeout_is_failure(completed_job):
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    notifier = WebhookNotifier(URL, timeout=0.1, transport=httpx.MockTransport(handler))
    assert notifier.notify(completed_job) is False


def test_send_test_success():
    transport, requests = recording_transport(201)
    notifier = WebhookNotifier(URL, environment="staging", transport=transport)

    receipt = notifier.send_test()
    assert receipt.status_code == 201
    assert receipt.webhook_url == URL
    body = json.loads(requests[0].content)
    assert body["event"] == "test"
    assert body["job"]["id"] == 999
    assert body["job"]["taskName"] == "Test Job"
    assert body["system"]["environment"] == "staging"


def test_send_test_failure_raises_delivery_error():
    transport, _ = recording_transport(500)
    notifier = WebhookNotifier(URL, transport=transport)

    with pytest.raises(DeliveryError) as exc:
        notifier.send_test()
    assert "HTTP 500" in exc.value.message


def test_send_test_network_error_raises_delivery_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    notifier = WebhookNotifier(URL, transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryError):
        notifier.send_test()
