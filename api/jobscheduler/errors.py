"""
Error kinds surfaced by the job scheduler.

Each error carries a machine-readable ``kind`` and the HTTP status the API
answers with. The API turns them into ``{success, error, message}`` bodies.
"""


class JobSchedulerError(Exception):
    """Base exception for all job scheduler errors."""

    kind = "JobSchedulerError"
    http_status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(JobSchedulerError):
    """Bad or missing input: empty task name, unknown priority or status."""

    kind = "ValidationError"
    http_status = 400


class NotFoundError(JobSchedulerError):
    """Raised when a requested job does not exist."""

    kind = "NotFoundError"
    http_status = 404

    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"Job with ID {job_id} does not exist")


class InvalidStateError(JobSchedulerError):
    """Raised when an operation is not permitted from the job's current status."""

    kind = "InvalidStateError"
    http_status = 400

    def __init__(self, job_id: int, current_status: str, expected_status: str | None = None):
        self.job_id = job_id
        self.current_status = current_status
        self.expected_status = expected_status
        if expected_status == "pending":
            message = f"Job cannot be run. Current status: {current_status}"
        else:
            message = f"Job {job_id} is {current_status}, expected {expected_status}"
        super().__init__(message)


class DeliveryError(JobSchedulerError):
    """Webhook POST failed. Only surfaced by the test webhook endpoint."""

    kind = "DeliveryError"
    http_status = 500
