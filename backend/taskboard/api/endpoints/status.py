# taskboard/api/endpoints/status.py
import resource
import sys
import time as process_time
import uuid
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from fastapi import APIRouter, HTTPException, Response, status as http_status
from loguru import logger
from pydantic import BaseModel, Field

from taskboard.core.config import settings
from taskboard.core.logging_config import trace_id_var
from taskboard.modules.tasks.repository import get_task_repository


class ComponentStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"] = "ok"
    message: Optional[str] = None


class ProcessStats(BaseModel):
    max_rss_bytes: int = Field(..., description="Peak resident set size")
    cpu_seconds: float = Field(..., description="User plus system CPU time")


class HealthCheckResponse(BaseModel):
    status: Literal["ok", "error"] = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float = Field(..., description="Process uptime in seconds")
    process: ProcessStats
    components: Dict[str, ComponentStatus]


class ServiceInfoResponse(BaseModel):
    name: str
    version: str
    endpoints: Dict[str, str]


PROCESS_START_TIME = process_time.monotonic()


def read_process_stats() -> ProcessStats:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is KiB on Linux, bytes on macOS
    scale = 1 if sys.platform == "darwin" else 1024
    return ProcessStats(max_rss_bytes=usage.ru_maxrss * scale, cpu_seconds=usage.ru_utime + usage.ru_stime)


router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Status & Health"],
    summary="Application health and store status",
)
async def get_application_health():
    trace_id = trace_id_var.get() or f"health_{uuid.uuid4().hex[:8]}"
    log = logger.bind(trace_id=trace_id, api_endpoint="/health GET")
    log.info("Performing application health check...")

    component_name = f"store_{settings.STORE_BACKEND}"
    try:
        task_repo = await get_task_repository()
        if await task_repo.ping():
            store_status = ComponentStatus(status="ok")
        else:
            store_status = ComponentStatus(status="error", message="Store did not answer the ping")
    except HTTPException as e:
        log.error(f"Store not available: {e.detail}")
        store_status = ComponentStatus(status="unavailable", message=str(e.detail))

    critical_ok = store_status.status == "ok"
    response_payload = HealthCheckResponse(
        status="ok" if critical_ok else "error",
        uptime_seconds=process_time.monotonic() - PROCESS_START_TIME,
        process=read_process_stats(),
        components={component_name: store_status},
    )

    status_code = http_status.HTTP_200_OK if critical_ok else http_status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(
        content=response_payload.model_dump_json(exclude_none=True),
        status_code=status_code,
        media_type="application/json",
    )


@router.get(
    "/",
    response_model=ServiceInfoResponse,
    tags=["Status & Health"],
    summary="Service name, version and entry points",
)
async def get_service_info():
    return ServiceInfoResponse(
        name=settings.PROJECT_NAME,
        version=settings.VERSION,
        endpoints={
            "health": "/health",
            "docs": "/docs",
            "tasks": f"{settings.API_V1_STR}/tasks",
        },
    )
