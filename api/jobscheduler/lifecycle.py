"""
Job lifecycle engine.

    pending --run--> running --completion--> completed
                             `--error------> failed

``run`` flips pending -> running with an atomic check-and-set and schedules
the deferred completion. The completion runs on a timer thread, after the run
request has already returned. If the job vanished in the meantime (deleted or
reset), the completion is a no-op.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import InvalidStateError, NotFoundError
from .models import Job, JobStatus, utcnow
from .notifier import Notifier
from .scheduling import DeferredTaskScheduler
from .store import JobStore

log = logging.getLogger("lifecycle")

DEFAULT_COMPLETION_DELAY_SECONDS = 3.0


@dataclass
class RunAck:
    job_id: int
    task_name: str
    estimated_delay_seconds: float


def simulate_work(job: Job) -> None:
    """Stand-in for real work; the delay itself is the simulation."""


def _mark_running(job: Job) -> None:
    job.status = JobStatus.running


def _mark_completed(job: Job) -> None:
    job.status = JobStatus.completed
    job.completed_at = utcnow()
    job.webhook_sent = False


def _mark_failed(job: Job) -> None:
    job.status = JobStatus.failed
    job.completed_at = None
    job.webhook_sent = False


class JobLifecycleEngine:
    def __init__(
        self,
        store: JobStore,
        notifier: Notifier,
        delay_seconds: float = DEFAULT_COMPLETION_DELAY_SECONDS,
        scheduler: Optional[DeferredTaskScheduler] = None,
        process: Callable[[Job], None] = simulate_work,
    ):
        self.store = store
        self.notifier = notifier
        self.delay_seconds = delay_seconds
        self.scheduler = scheduler or DeferredTaskScheduler()
        self.process = process

    def run(self, job_id: int) -> RunAck:
        """
        Start a pending job. Returns without waiting for completion.

        Raises:
            NotFoundError: unknown id
            InvalidStateError: the job is not pending
        """
        job = self.store.update(job_id, _mark_running, expected_status=JobStatus.pending)
        self.scheduler.schedule(job_id, self.delay_seconds, lambda: self.complete(job_id))
        log.info(f"job started: {job.task_name}", extra={"job_id": job_id, "event": "job_running"})
        return RunAck(job_id=job.id, task_name=job.task_name, estimated_delay_seconds=self.delay_seconds)

    def complete(self, job_id: int) -> None:
        """Deferred completion. Never raises."""
        try:
            job = self.store.get(job_id)
            if job.status != JobStatus.running:
                log.warning(
                    f"completion skipped, job is {job.status.value}",
                    extra={"job_id": job_id, "event": "completion_skipped"},
                )
                return
            self.process(job)
            job = self.store.update(job_id, _mark_completed, expected_status=JobStatus.running)
        except (NotFoundError, InvalidStateError) as e:
            log.info(f"completion skipped: {e.message}", extra={"job_id": job_id, "event": "completion_skipped"})
            return
        except Exception:
            log.error("job failed", extra={"job_id": job_id, "event": "job_failed"}, exc_info=True)
            self._fail(job_id)
            return

        log.info("job completed", extra={"job_id": job_id, "event": "job_completed"})

        try:
            sent = self.notifier.notify(job)
        except Exception:
            log.error("notifier raised", extra={"job_id": job_id, "event": "webhook_failed"}, exc_info=True)
            sent = False

        try:
            self.store.update(job_id, lambda j: setattr(j, "webhook_sent", sent), expected_status=JobStatus.completed)
        except (NotFoundError, InvalidStateError):
            log.info("job deleted before webhook result was recorded", extra={"job_id": job_id, "event": "webhook_result_dropped"})
            return
        except Exception:
            log.error("could not record webhook result", extra={"job_id": job_id, "event": "webhook_result_error"}, exc_info=True)
            return
        log.info(
            f"job finished, webhook sent: {'yes' if sent else 'no'}",
            extra={"job_id": job_id, "event": "job_finished"},
        )

    def _fail(self, job_id: int) -> None:
        try:
            self.store.update(job_id, _mark_failed, expected_status=JobStatus.running)
        except (NotFoundError, InvalidStateError):
            return
        except Exception:
            log.error("could not mark job failed", extra={"job_id": job_id, "event": "job_fail_error"}, exc_info=True)

    def delete(self, job_id: int) -> None:
        """Delete a job, cancelling its pending completion if any."""
        self.scheduler.cancel(job_id)
        self.store.delete(job_id)
        log.info("job deleted", extra={"job_id": job_id, "event": "job_deleted"})

    def reset(self, jobs: Iterable[Job]) -> None:
        self.scheduler.shutdown()
        self.store.replace_all(jobs)
        log.info("jobs reset", extra={"event": "jobs_reset"})

    def shutdown(self) -> None:
        self.scheduler.shutdown()
