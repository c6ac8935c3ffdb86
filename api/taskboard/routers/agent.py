"""Agent trigger routes: dispatch one task now, or sweep every OPEN task."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter

from taskboard.models.error import ErrorDetail
from taskboard.models.task import AgentTrigger, SweepResult, TriggerAck
from taskboard.routers.tasks import http_error, new_task
from taskboard.services import agent_dispatcher, bulk_processor
from taskboard.services.task_store import TaskStoreError, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/agent",
    response_model=TriggerAck,
    response_model_exclude_none=True,
    status_code=202,
    responses={
        409: {"description": "Task id already exists", "model": ErrorDetail},
        503: {"description": "Task store unavailable", "model": ErrorDetail},
    },
)
async def trigger_agent(data: AgentTrigger) -> TriggerAck:
    """Record the task and hand it to the agent. Returns before the agent replies."""
    store = get_store()
    try:
        created = await asyncio.to_thread(store.create, new_task(data.id, data.task, data.priority))
        task = await asyncio.to_thread(agent_dispatcher.claim_for_dispatch, created.id, store=store)
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    agent_dispatcher.submit_detached(task.id, task.title, store=store)
    logger.info("agent_triggered task_id=%s", task.id)
    return TriggerAck(success=True, message="Agent triggered successfully", task=task)


@router.post(
    "/agent/process-all",
    response_model=SweepResult,
    responses={503: {"description": "Task store unavailable", "model": ErrorDetail}},
)
async def process_all() -> SweepResult:
    """Dispatch every OPEN task, one at a time, and wait for the sweep to finish."""
    try:
        count = await bulk_processor.run_all()
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    if count == 0:
        return SweepResult(success=True, message="No open tasks to process", count=0)
    return SweepResult(success=True, message=f"Processed {count} tasks", count=count)
