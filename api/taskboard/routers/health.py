"""Liveness and version endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from taskboard.services import gateway_config
from taskboard.services.task_store import tasks_store_path

router = APIRouter()

API_VERSION = "1.0.0"
STARTED_AT = datetime.now(timezone.utc)


def _iso_utc(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    version: str
    timestamp: str
    started_at: str
    uptime_seconds: int
    store_path: str
    store_present: bool
    gateway_url: str


@router.get("/version")
async def version():
    return {"version": API_VERSION}


@router.get("/health", response_model=HealthResponse)
async def health():
    """Answers whenever the process is up; does not probe the gateway (see /gateway/status)."""
    now = datetime.now(timezone.utc)
    path = tasks_store_path()
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        timestamp=_iso_utc(now),
        started_at=_iso_utc(STARTED_AT),
        uptime_seconds=max(0, int((now - STARTED_AT).total_seconds())),
        store_path=str(path),
        store_present=path.is_file(),
        gateway_url=gateway_config.gateway_url(),
    )
