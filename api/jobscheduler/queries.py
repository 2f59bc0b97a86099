"""
Listing and aggregate views over a job store.

Works on the snapshot returned by ``JobStore.list`` so it behaves the same for
every store backend.
"""

import math
from collections import Counter
from datetime import timedelta
from typing import Optional

from .errors import ValidationError
from .models import Job, JobPriority, JobStatus, utcnow
from .schemas import (
    ActivityEntry,
    DashboardOut,
    JobListOut,
    JobOut,
    Overview,
    Pagination,
    SystemInfo,
    WebhookInfo,
    WebhookLogEntry,
    WebhookLogsOut,
    WebhookLogSummary,
)
from .store import JobStore

DEFAULT_PAGE_LIMIT = 10
RECENT_JOBS = 5
ACTIVITY_DAYS = 7

PRIORITY_RANK = {JobPriority.low: 0, JobPriority.medium: 1, JobPriority.high: 2}
STATUS_RANK = {JobStatus.pending: 0, JobStatus.running: 1, JobStatus.completed: 2, JobStatus.failed: 3}

SORT_KEYS = {
    "id": lambda j: j.id,
    "taskName": lambda j: (j.task_name.lower(), j.id),
    "priority": lambda j: (PRIORITY_RANK[j.priority], j.id),
    "status": lambda j: (STATUS_RANK[j.status], j.id),
    "createdAt": lambda j: (j.created_at, j.id),
    "updatedAt": lambda j: (j.updated_at, j.id),
}
DEFAULT_SORT = "createdAt"


def _positive(name: str, value: Optional[int], default: int) -> int:
    if value is None:
        return default
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def sort_jobs(jobs: list[Job], sort_by: Optional[str] = None, order: Optional[str] = None) -> list[Job]:
    """Sort by an allow-listed column; unknown columns fall back to createdAt."""
    key = SORT_KEYS.get(sort_by or DEFAULT_SORT, SORT_KEYS[DEFAULT_SORT])
    descending = (order or "desc").lower() != "asc"
    return sorted(jobs, key=key, reverse=descending)


def list_jobs(
    store: JobStore,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
) -> JobListOut:
    jobs = store.list(status=status, priority=priority)
    total = store.count()

    if sort_by is not None or order is not None:
        jobs = sort_jobs(jobs, sort_by, order)

    pagination = None
    if page is not None or limit is not None:
        page = _positive("page", page, 1)
        limit = _positive("limit", limit, DEFAULT_PAGE_LIMIT)
        matched = len(jobs)
        offset = (page - 1) * limit
        jobs = jobs[offset:offset + limit]
        pagination = Pagination(page=page, limit=limit, total=matched, total_pages=math.ceil(matched / limit))

    return JobListOut(
        count=len(jobs),
        total=total,
        jobs=[JobOut.model_validate(j) for j in jobs],
        pagination=pagination,
    )


def overview(jobs: list[Job]) -> Overview:
    by_status = Counter(j.status for j in jobs)
    by_priority = Counter(j.priority for j in jobs)
    return Overview(
        total_jobs=len(jobs),
        pending_jobs=by_status[JobStatus.pending],
        running_jobs=by_status[JobStatus.running],
        completed_jobs=by_status[JobStatus.completed],
        failed_jobs=by_status[JobStatus.failed],
        webhooks_sent=sum(1 for j in jobs if j.webhook_sent),
        high_priority=by_priority[JobPriority.high],
        medium_priority=by_priority[JobPriority.medium],
        low_priority=by_priority[JobPriority.low],
    )


def activity(jobs: list[Job], days: int = ACTIVITY_DAYS) -> list[ActivityEntry]:
    """Jobs created per day and status over the last ``days`` days, newest day first."""
    since = utcnow() - timedelta(days=days)
    counts = Counter(
        (j.created_at.date().isoformat(), j.status) for j in jobs if j.created_at >= since
    )
    entries = [ActivityEntry(date=d, status=s, count=c) for (d, s), c in counts.items()]
    entries.sort(key=lambda e: (e.date, -STATUS_RANK[e.status]), reverse=True)
    return entries


def dashboard_stats(store: JobStore, webhook_url: str, uptime: float) -> DashboardOut:
    jobs = store.list()
    stats = overview(jobs)
    recent = sorted(jobs, key=lambda j: (j.updated_at, j.id), reverse=True)[:RECENT_JOBS]
    return DashboardOut(
        overview=stats,
        recent_jobs=[JobOut.model_validate(j) for j in recent],
        activity=activity(jobs),
        webhook_info=WebhookInfo(url=webhook_url, total_webhooks_sent=stats.webhooks_sent),
        system_info=SystemInfo(uptime=uptime, timestamp=utcnow()),
    )


def webhook_logs(store: JobStore) -> WebhookLogsOut:
    jobs = store.list()
    logs = [
        WebhookLogEntry(
            id=j.id,
            task_name=j.task_name,
            status=j.status,
            webhook_sent=j.webhook_sent,
            completed_at=j.completed_at,
            last_updated=j.updated_at,
            priority=j.priority,
        )
        for j in jobs
    ]
    sent = sum(1 for j in jobs if j.webhook_sent)
    return WebhookLogsOut(
        total_jobs=len(jobs),
        webhooks_sent=sent,
        logs=logs,
        summary=WebhookLogSummary(
            jobs_with_webhooks=sent,
            jobs_without_webhooks=sum(
                1 for j in jobs if j.status == JobStatus.completed and not j.webhook_sent
            ),
        ),
    )
