from datetime import timedelta

from .models import Job, JobPriority, JobStatus, utcnow

def sample_jobs() -> list[Job]:
    """Three demo jobs: two pending, one already completed with its webhook delivered."""
    now = utcnow()
    day_ago = now - timedelta(days=1)
    return [
        Job(
            id=1,
            task_name="Send Email",
            priority=JobPriority.high,
            status=JobStatus.pending,
            payload={"email": "test@example.com", "subject": "Welcome"},
            created_at=now,
            updated_at=now,
        ),
        Job(
            id=2,
            task_name="Generate Report",
            priority=JobPriority.medium,
            status=JobStatus.completed,
            payload={"reportType": "monthly", "format": "pdf"},
            created_at=day_ago,
            updated_at=day_ago,
            completed_at=day_ago,
            webhook_sent=True,
        ),
        Job(
            id=3,
            task_name="Data Backup",
            priority=JobPriority.low,
            status=JobStatus.pending,
            payload={"database": "users", "type": "incremental"},
            created_at=now,
            updated_at=now,
        ),
    ]
