import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class JobStatus(str, enum.Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"

class JobPriority(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"

@dataclass
class Job:
    """A job record as seen by the lifecycle engine, independent of the backing store."""

    id: int
    task_name: str
    priority: JobPriority = JobPriority.medium
    status: JobStatus = JobStatus.pending
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    webhook_sent: bool = False

    def copy(self) -> "Job":
        return replace(self, payload=dict(self.payload))

class JobRow(Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    task_name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[JobPriority] = mapped_column(Enum(JobPriority), default=JobPriority.medium, nullable=False)
    status: Mapped[JobStatus] = mapped_column(Enum(JobStatus), default=JobStatus.pending, nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    webhook_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
