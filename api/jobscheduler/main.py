import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .db import make_engine
from .errors import JobSchedulerError
from .lifecycle import JobLifecycleEngine
from .logging_utils import setup_logging
from .models import Job, utcnow
from .notifier import Notifier, WebhookNotifier
from .queries import dashboard_stats, list_jobs, webhook_logs
from .samples import sample_jobs
from .schemas import (
    DashboardOut,
    DeleteOut,
    ErrorOut,
    HealthOut,
    JobCreate,
    JobListOut,
    JobOut,
    ResetOut,
    RunAckOut,
    WebhookCheckOut,
    WebhookLogsOut,
)
from .settings import Settings, settings as default_settings
from .store import InMemoryJobStore, JobStore, SqlJobStore
from .ui import router as ui_router

log = logging.getLogger("api")

SERVICE_NAME = "Job Scheduler API"

ROUTES = [
    "GET /",
    "GET /api",
    "GET /api/health",
    "GET /api/ready",
    "GET /api/jobs",
    "GET /api/jobs/:id",
    "POST /api/jobs",
    "POST /api/jobs/:id/run",
    "DELETE /api/jobs/:id",
    "GET /api/jobs/stats/dashboard",
    "POST /api/jobs/reset",
    "POST /api/test-webhook",
    "GET /api/webhook-logs",
]

router = APIRouter(prefix="/api")


def build_store(cfg: Settings) -> JobStore:
    if cfg.database_url:
        return SqlJobStore(make_engine(cfg.database_url))
    return InMemoryJobStore()


def get_lifecycle(request: Request) -> JobLifecycleEngine:
    return request.app.state.lifecycle


def get_store(request: Request) -> JobStore:
    return request.app.state.lifecycle.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def uptime(request: Request) -> float:
    return time.monotonic() - request.app.state.started_at


def _error(status_code: int, kind: str, message: str, headers: Optional[dict] = None, **extra) -> JSONResponse:
    body = ErrorOut(error=kind, message=message).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content={**body, **extra}, headers=headers)


@router.get("")
def index():
    return {
        "message": SERVICE_NAME,
        "version": __version__,
        "status": "running",
        "endpoints": ROUTES,
    }


@router.get("/health", response_model=HealthOut)
def health(request: Request, store: JobStore = Depends(get_store), cfg: Settings = Depends(get_settings)):
    log.info("health ok", extra={"request_id": request.state.request_id, "event": "health"})
    return HealthOut(
        timestamp=utcnow(),
        service=SERVICE_NAME,
        version=__version__,
        uptime=uptime(request),
        webhook_url=cfg.webhook_url,
        total_jobs=store.count(),
        store=store.backend,
    )


@router.get("/ready")
def ready(request: Request, store: JobStore = Depends(get_store)):
    store.ping()
    log.info("ready ok", extra={"request_id": request.state.request_id, "event": "ready"})
    return {"ready": True}


@router.get("/jobs", response_model=JobListOut)
def get_jobs(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = None,
    store: JobStore = Depends(get_store),
):
    return list_jobs(store, status=status, priority=priority, page=page, limit=limit, sort_by=sort_by, order=order)


@router.get("/jobs/stats/dashboard", response_model=DashboardOut)
def get_dashboard(request: Request, store: JobStore = Depends(get_store), cfg: Settings = Depends(get_settings)):
    return dashboard_stats(store, webhook_url=cfg.webhook_url, uptime=uptime(request))


@router.post("/jobs/reset", response_model=ResetOut)
def reset_jobs(request: Request, lifecycle: JobLifecycleEngine = Depends(get_lifecycle)):
    lifecycle.reset(sample_jobs())
    log.info("jobs reset to sample data", extra={"request_id": request.state.request_id, "event": "jobs_reset"})
    return ResetOut(total_jobs=lifecycle.store.count())


@router.post("/jobs", response_model=JobOut, status_code=201)
def create_job(req: JobCreate, request: Request, store: JobStore = Depends(get_store)):
    job = store.create(req.task_name, priority=req.priority, payload=req.payload)
    log.info(
        f"job created: {job.task_name}",
        extra={"request_id": request.state.request_id, "job_id": job.id, "event": "job_created"},
    )
    return JobOut.model_validate(job)


@router.get("/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: int, store: JobStore = Depends(get_store)):
    return JobOut.model_validate(store.get(job_id))


@router.post("/jobs/{job_id}/run", response_model=RunAckOut)
def run_job(job_id: int, request: Request, lifecycle: JobLifecycleEngine = Depends(get_lifecycle)):
    ack = lifecycle.run(job_id)
    log.info(
        "job run accepted",
        extra={"request_id": request.state.request_id, "job_id": job_id, "event": "job_run"},
    )
    return RunAckOut(
        job_id=ack.job_id,
        task_name=ack.task_name,
        estimated_completion=f"{ack.estimated_delay_seconds:g} seconds",
        estimated_delay_seconds=ack.estimated_delay_seconds,
    )


@router.delete("/jobs/{job_id}", response_model=DeleteOut)
def delete_job(job_id: int, request: Request, lifecycle: JobLifecycleEngine = Depends(get_lifecycle)):
    lifecycle.delete(job_id)
    log.info(
        "job delete accepted",
        extra={"request_id": request.state.request_id, "job_id": job_id, "event": "job_delete"},
    )
    return DeleteOut(deleted_job_id=job_id)


@router.post("/test-webhook", response_model=WebhookCheckOut)
def test_webhook(request: Request, lifecycle: JobLifecycleEngine = Depends(get_lifecycle)):
    receipt = lifecycle.notifier.send_test()
    log.info("test webhook delivered", extra={"request_id": request.state.request_id, "event": "test_webhook"})
    return WebhookCheckOut(status=receipt.status_code, webhook_url=receipt.webhook_url, timestamp=receipt.timestamp)


@router.get("/webhook-logs", response_model=WebhookLogsOut)
def get_webhook_logs(store: JobStore = Depends(get_store)):
    return webhook_logs(store)


def create_app(
    cfg: Optional[Settings] = None,
    store: Optional[JobStore] = None,
    notifier: Optional[Notifier] = None,
    process=None,
    seed: Optional[list[Job]] = None,
) -> FastAPI:
    cfg = cfg or default_settings
    store = store if store is not None else build_store(cfg)
    notifier = notifier or WebhookNotifier(
        cfg.webhook_url, timeout=cfg.webhook_timeout_seconds, environment=cfg.environment
    )
    lifecycle_kwargs = {"delay_seconds": cfg.completion_delay_seconds}
    if process is not None:
        lifecycle_kwargs["process"] = process
    lifecycle = JobLifecycleEngine(store, notifier, **lifecycle_kwargs)

    if seed is None and cfg.seed_sample_jobs and store.count() == 0:
        seed = sample_jobs()
    if seed:
        store.replace_all(seed)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            f"{SERVICE_NAME} started (store={store.backend}, webhook={cfg.webhook_url})",
            extra={"event": "startup"},
        )
        yield
        lifecycle.shutdown()
        log.info("shutdown complete", extra={"event": "shutdown"})

    app = FastAPI(title=SERVICE_NAME, version=__version__, lifespan=lifespan)
    app.state.settings = cfg
    app.state.lifecycle = lifecycle
    app.state.started_at = time.monotonic()

    app.include_router(ui_router)
    app.include_router(router)

    @app.middleware("http")
    async def request_id_mw(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(JobSchedulerError)
    async def job_error_handler(request: Request, exc: JobSchedulerError):
        log.info(
            f"{exc.kind}: {exc.message}",
            extra={"request_id": getattr(request.state, "request_id", None), "event": "request_rejected"},
        )
        return _error(exc.http_status, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error(400, "ValidationError", message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(
                404,
                "NotFoundError",
                f"Cannot {request.method} {request.url.path}",
                availableRoutes=ROUTES,
            )
        if exc.status_code == 405:
            return _error(405, "ValidationError", f"Cannot {request.method} {request.url.path}", headers=exc.headers)
        kind = "InternalError" if exc.status_code >= 500 else "ValidationError"
        return _error(exc.status_code, kind, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        log.error(
            "unhandled error",
            extra={"request_id": request_id, "event": "server_error"},
            exc_info=exc,
        )
        message = str(exc) if cfg.environment == "development" else "Something went wrong"
        # served outside request_id_mw, so the header is set here
        response = _error(500, "InternalError", message)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response

    return app


setup_logging(default_settings.log_level)

app = create_app()
