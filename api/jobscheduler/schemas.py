from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import JobPriority, JobStatus

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class JobCreate(CamelModel):
    task_name: str = Field(max_length=255)
    priority: str | None = None
    payload: dict[str, Any] | None = None

class JobOut(CamelModel):
    id: int
    task_name: str
    priority: JobPriority
    status: JobStatus
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    webhook_sent: bool

class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int

class JobListOut(CamelModel):
    success: bool = True
    count: int
    total: int
    jobs: list[JobOut]
    pagination: Pagination | None = None

class RunAckOut(CamelModel):
    success: bool = True
    message: str = "Job started successfully"
    job_id: int
    task_name: str
    estimated_completion: str
    estimated_delay_seconds: float
    note: str = "Webhook will be triggered upon completion"

class DeleteOut(CamelModel):
    success: bool = True
    message: str = "Job deleted successfully"
    deleted_job_id: int

class Overview(CamelModel):
    total_jobs: int
    pending_jobs: int
    running_jobs: int
    completed_jobs: int
    failed_jobs: int
    webhooks_sent: int
    high_priority: int
    medium_priority: int
    low_priority: int

class ActivityEntry(CamelModel):
    date: str
    status: JobStatus
    count: int

class WebhookInfo(CamelModel):
    url: str
    test_endpoint: str = "/api/test-webhook"
    total_webhooks_sent: int

class SystemInfo(CamelModel):
    uptime: float
    timestamp: datetime

class DashboardOut(CamelModel):
    success: bool = True
    overview: Overview
    recent_jobs: list[JobOut]
    activity: list[ActivityEntry]
    webhook_info: WebhookInfo
    system_info: SystemInfo

class WebhookLogEntry(CamelModel):
    id: int
    task_name: str
    status: JobStatus
    webhook_sent: bool
    completed_at: datetime | None = None
    last_updated: datetime
    priority: JobPriority

class WebhookLogSummary(CamelModel):
    jobs_with_webhooks: int
    jobs_without_webhooks: int

class WebhookLogsOut(CamelModel):
    success: bool = True
    total_jobs: int
    webhooks_sent: int
    logs: list[WebhookLogEntry]
    summary: WebhookLogSummary

class WebhookCheckOut(CamelModel):
    success: bool = True
    message: str = "Test webhook sent successfully"
    status: int
    webhook_url: str
    timestamp: datetime

class HealthOut(CamelModel):
    status: str = "healthy"
    timestamp: datetime
    service: str
    version: str
    uptime: float
    webhook_url: str
    total_jobs: int
    store: str

class ResetOut(CamelModel):
    success: bool = True
    message: str = "Jobs reset to default"
    total_jobs: int

class ErrorOut(CamelModel):
    success: bool = False
    error: str
    message: str
