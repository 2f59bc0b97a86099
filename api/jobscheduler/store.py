"""
Job stores.

Two implementations of the same interface:
- InMemoryJobStore: a dict guarded by a lock
- SqlJobStore: SQLAlchemy-backed ``jobs`` table

The lifecycle engine and the notifier only see ``JobStore``.

Ids are allocated as one past the highest id the store has ever handed out
(or the highest existing id, whichever is larger), so a deleted id is never
reused. ``update`` with ``expected_status`` is an atomic check-and-set.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.engine import Engine

from .db import Base, make_session_factory
from .errors import InvalidStateError, NotFoundError, ValidationError
from .models import Job, JobPriority, JobRow, JobStatus, utcnow


Mutator = Callable[[Job], None]


def parse_priority(value: Any) -> JobPriority:
    if isinstance(value, JobPriority):
        return value
    try:
        return JobPriority(value)
    except ValueError:
        raise ValidationError("Priority must be Low, Medium, or High") from None


def parse_status(value: Any) -> JobStatus:
    if isinstance(value, JobStatus):
        return value
    try:
        return JobStatus(value)
    except ValueError:
        raise ValidationError(
            "Status must be pending, running, completed, or failed"
        ) from None


def build_job(job_id: int, task_name: Any, priority: Any = None, payload: Any = None) -> Job:
    """Validate create input and build a fresh pending job."""
    if not isinstance(task_name, str) or not task_name.strip():
        raise ValidationError("Task name is required")
    prio = JobPriority.medium if priority is None else parse_priority(priority)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    now = utcnow()
    return Job(
        id=job_id,
        task_name=task_name.strip(),
        priority=prio,
        status=JobStatus.pending,
        payload=payload,
        created_at=now,
        updated_at=now,
        completed_at=None,
        webhook_sent=False,
    )


def _touch(job: Job) -> None:
    job.updated_at = max(utcnow(), job.created_at)


def _matches(job: Job, status: Optional[JobStatus], priority: Optional[JobPriority]) -> bool:
    if status is not None and job.status != status:
        return False
    if priority is not None and job.priority != priority:
        return False
    return True


class JobStore(ABC):
    """Authoritative collection of jobs, addressable by id."""

    backend = "abstract"

    @abstractmethod
    def create(self, task_name: str, priority: Any = None, payload: Any = None) -> Job:
        ...

    @abstractmethod
    def get(self, job_id: int) -> Job:
        ...

    @abstractmethod
    def list(self, status: Any = None, priority: Any = None) -> list[Job]:
        ...

    @abstractmethod
    def delete(self, job_id: int) -> None:
        ...

    @abstractmethod
    def update(
        self,
        job_id: int,
        mutator: Mutator,
        expected_status: Optional[JobStatus] = None,
    ) -> Job:
        """
        Apply ``mutator`` to the job and refresh ``updated_at``.

        Raises:
            NotFoundError: no job with that id
            InvalidStateError: ``expected_status`` given and the job is in another status
        """

    @abstractmethod
    def replace_all(self, jobs: Iterable[Job]) -> None:
        """Drop every job and load ``jobs`` instead (sample data reset)."""

    @abstractmethod
    def count(self) -> int:
        ...

    def ping(self) -> bool:
        return True

    @staticmethod
    def _filters(status: Any, priority: Any) -> tuple[Optional[JobStatus], Optional[JobPriority]]:
        return (
            None if status is None else parse_status(status),
            None if priority is None else parse_priority(priority),
        )


class InMemoryJobStore(JobStore):
    backend = "memory"

    def __init__(self, jobs: Iterable[Job] = ()):
        self._lock = threading.RLock()
        self._jobs: dict[int, Job] = {}
        self._high_water = 0
        self.replace_all(jobs)

    def create(self, task_name: str, priority: Any = None, payload: Any = None) -> Job:
        with self._lock:
            next_id = max([self._high_water, *self._jobs.keys()]) + 1
            job = build_job(next_id, task_name, priority, payload)
            self._jobs[job.id] = job
            self._high_water = job.id
            return job.copy()

    def get(self, job_id: int) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError(job_id)
            return job.copy()

    def list(self, status: Any = None, priority: Any = None) -> list[Job]:
        status, priority = self._filters(status, priority)
        with self._lock:
            return [j.copy() for j in self._jobs.values() if _matches(j, status, priority)]

    def delete(self, job_id: int) -> None:
        with self._lock:
            if self._jobs.pop(job_id, None) is None:
                raise NotFoundError(job_id)

    def update(self, job_id: int, mutator: Mutator, expected_status: Optional[JobStatus] = None) -> Job:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise NotFoundError(job_id)
            if expected_status is not None and current.status != expected_status:
                raise InvalidStateError(job_id, current.status.value, expected_status.value)
            # mutate a copy so a raising mutator leaves the record untouched
            job = current.copy()
            mutator(job)
            _touch(job)
            self._jobs[job_id] = job
            return job.copy()

    def replace_all(self, jobs: Iterable[Job]) -> None:
        with self._lock:
            self._jobs = {j.id: j.copy() for j in jobs}
            self._high_water = max([self._high_water, *self._jobs.keys()])

    def count(self) -> int:
        with self._lock:
            return len(self._jobs)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_job(row: JobRow) -> Job:
    return Job(
        id=row.id,
        task_name=row.task_name,
        priority=row.priority,
        status=row.status,
        payload=dict(row.payload or {}),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        completed_at=_aware(row.completed_at),
        webhook_sent=bool(row.webhook_sent),
    )


def _copy_to_row(job: Job, row: JobRow) -> None:
    row.task_name = job.task_name
    row.priority = job.priority
    row.status = job.status
    row.payload = dict(job.payload)
    row.created_at = job.created_at
    row.updated_at = job.updated_at
    row.completed_at = job.completed_at
    row.webhook_sent = job.webhook_sent


class SqlJobStore(JobStore):
    backend = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = make_session_factory(engine)
        self._lock = threading.RLock()
        Base.metadata.create_all(bind=engine)
        with self.SessionLocal() as db:
            self._high_water = db.scalar(select(func.max(JobRow.id))) or 0

    def create(self, task_name: str, priority: Any = None, payload: Any = None) -> Job:
        with self._lock, self.SessionLocal() as db:
            existing_max = db.scalar(select(func.max(JobRow.id))) or 0
            job = build_job(max(self._high_water, existing_max) + 1, task_name, priority, payload)
            row = JobRow(id=job.id)
            _copy_to_row(job, row)
            db.add(row)
            db.commit()
            self._high_water = job.id
            return job

    def get(self, job_id: int) -> Job:
        with self._lock, self.SessionLocal() as db:
            row = db.get(JobRow, job_id)
            if row is None:
                raise NotFoundError(job_id)
            return _row_to_job(row)

    def list(self, status: Any = None, priority: Any = None) -> list[Job]:
        status, priority = self._filters(status, priority)
        stmt = select(JobRow).order_by(JobRow.id)
        if status is not None:
            stmt = stmt.where(JobRow.status == status)
        if priority is not None:
            stmt = stmt.where(JobRow.priority == priority)
        with self._lock, self.SessionLocal() as db:
            return [_row_to_job(row) for row in db.scalars(stmt)]

    def delete(self, job_id: int) -> None:
        with self._lock, self.SessionLocal() as db:
            row = db.get(JobRow, job_id)
            if row is None:
                raise NotFoundError(job_id)
            db.delete(row)
            db.commit()

    def update(self, job_id: int, mutator: Mutator, expected_status: Optional[JobStatus] = None) -> Job:
        with self._lock, self.SessionLocal() as db:
            row = db.get(JobRow, job_id, with_for_update=True)
            if row is None:
                raise NotFoundError(job_id)
            if expected_status is not None and row.status != expected_status:
                raise InvalidStateError(job_id, row.status.value, expected_status.value)
            job = _row_to_job(row)
            mutator(job)
            _touch(job)
            _copy_to_row(job, row)
            db.commit()
            return job

    def replace_all(self, jobs: Iterable[Job]) -> None:
        with self._lock, self.SessionLocal() as db:
            db.execute(delete(JobRow))
            high_water = 0
            for job in jobs:
                row = JobRow(id=job.id)
                _copy_to_row(job, row)
                db.add(row)
                high_water = max(high_water, job.id)
            db.commit()
            self._high_water = max(self._high_water, high_water)

    def count(self) -> int:
        with self._lock, self.SessionLocal() as db:
            return db.scalar(select(func.count()).select_from(JobRow)) or 0

    def ping(self) -> bool:
        with self._lock, self.SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return True
