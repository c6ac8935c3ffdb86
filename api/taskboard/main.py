from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from taskboard.routers import agent, gateway, health, tasks, webhooks

app = FastAPI(title="Agent Task Board API", version="1.0.0")
# Module loggers are all children of "taskboard".
_package_logger = logging.getLogger("taskboard")
if not _package_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    _package_logger.addHandler(handler)
_package_logger.setLevel(logging.INFO)

logger = logging.getLogger("taskboard.api")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "1" if default else "").strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


def _route_signature(request: Request) -> tuple[str, str]:
    route = request.scope.get("route")
    route_path = str(getattr(route, "path", "") or "") if route is not None else ""
    route_name = str(getattr(route, "name", "") or "") if route is not None else ""
    return route_path or request.url.path, route_name or "unknown"


# Configure CORS
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""
    return RedirectResponse(url="/docs")


app.include_router(tasks.router, prefix="/api", tags=["tasks"])
app.include_router(agent.router, prefix="/api", tags=["agent"])
app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
app.include_router(gateway.router, prefix="/api", tags=["gateway"])
app.include_router(health.router, prefix="/api", tags=["health"])


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code: int | None = None
    exc_name: str | None = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        status_code = 500
        exc_name = exc.__class__.__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if status_code is None:
            status_code = 500
        if elapsed_ms >= _slow_request_ms_threshold() or _env_flag("API_LOG_ALL_REQUESTS") or status_code >= 500:
            request_path, route_label = _route_signature(request)
            logger.warning(
                "slow_api_request method=%s path=%s route=%s status=%s elapsed_ms=%.2f exception=%s",
                request.method,
                request_path,
                route_label,
                status_code,
                elapsed_ms,
                exc_name or "none",
            )
