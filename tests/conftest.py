import os
import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("WEBHOOK_URL", "http://hooks.test/endpoint")
os.environ.setdefault("LOG_LEVEL", "WARNING")

sys.path.append(str(Path(__file__).resolve().parents[1] / "api"))

from jobscheduler.db import make_engine  # noqa: E402
from jobscheduler.main import create_app  # noqa: E402
from jobscheduler.models import JobStatus, utcnow  # noqa: E402
from jobscheduler.errors import DeliveryError  # noqa: E402
from jobscheduler.notifier import DeliveryReceipt  # noqa: E402
from jobscheduler.settings import Settings  # noqa: E402
from jobscheduler.store import InMemoryJobStore, SqlJobStore  # noqa: E402

FAST_DELAY = 0.05


class RecordingNotifier:
    """Stands in for the webhook notifier; remembers every job it was asked about."""

    def __init__(self, result: bool = True, url: str = "http://hooks.test/endpoint"):
        self.url = url
        self.result = result
        self.notified = []
        self.test_calls = 0

    def notify(self, job):
        self.notified.append(job)
        return self.result

    def send_test(self):
        self.test_calls += 1
        if not self.result:
            raise DeliveryError("HTTP 503: unavailable")
        return DeliveryReceipt(status_code=200, webhook_url=self.url, timestamp=utcnow())


class StaleFlagNotifier(RecordingNotifier):
    """Marks the job as already notified, then reports the outcome it was built with.

    The stored flag only returns to False if the engine writes the result back.
    """

    def __init__(self, store, result: bool = False, error: Exception = None):
        super().__init__(result=result)
        self.store = store
        self.error = error

    def notify(self, job):
        self.store.update(job.id, lambda j: setattr(j, "webhook_sent", True))
        self.notified.append(job)
        if self.error is not None:
            raise self.error
        return self.result


def wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError(f"condition not met after {timeout}s")
        time.sleep(0.01)


def wait_for_status(read, job_id, statuses=(JobStatus.completed, JobStatus.failed), timeout=3.0):
    """Poll ``read(job_id)`` until the job reaches one of ``statuses``."""
    deadline = time.monotonic() + timeout
    while True:
        job = read(job_id)
        status = job["status"] if isinstance(job, dict) else job.status.value
        if status in [getattr(s, "value", s) for s in statuses]:
            return job
        if time.monotonic() > deadline:
            raise AssertionError(f"job {job_id} still {status} after {timeout}s")
        time.sleep(0.01)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield InMemoryJobStore()
    else:
        engine = make_engine("sqlite+pysqlite:///:memory:")
        yield SqlJobStore(engine)
        engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        webhook_url="http://hooks.test/endpoint",
        completion_delay_seconds=FAST_DELAY,
    )


@pytest.fixture
def app(settings, notifier):
    return create_app(settings, store=InMemoryJobStore(), notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
