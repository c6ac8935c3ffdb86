"""Task board API routes: list, create, inspect, update, delete."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from taskboard.models.error import ErrorDetail
from taskboard.models.task import Task, TaskCreate, TaskStatus, TaskStatusUpdate, TriggerAck
from taskboard.services import agent_dispatcher, task_lifecycle
from taskboard.services.task_store import (
    DuplicateTaskIdError,
    InvalidInputError,
    InvalidTransitionError,
    StoreUnavailableError,
    TaskNotFoundError,
    TaskStoreError,
    get_store,
)

router = APIRouter()

_STATUS_BY_ERROR: tuple[tuple[type[TaskStoreError], int], ...] = (
    (InvalidInputError, 400),
    (TaskNotFoundError, 404),
    (DuplicateTaskIdError, 409),
    (InvalidTransitionError, 409),
    (StoreUnavailableError, 503),
)


def http_error(exc: TaskStoreError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def new_task_id() -> str:
    """Timestamp-derived id (epoch milliseconds), like the dashboard assigns."""
    return str(int(time.time() * 1000))


def new_task(task_id: Optional[str], title: str, priority) -> Task:
    return Task(
        id=task_id or new_task_id(),
        title=title,
        status=TaskStatus.OPEN,
        priority=priority,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/tasks", response_model=list[Task], response_model_exclude_none=True)
async def list_tasks(status: Optional[str] = Query(None)) -> list[Task]:
    """All tasks, newest first. The dashboard polls this."""
    try:
        tasks = await asyncio.to_thread(get_store().list)
        wanted = TaskStatus.parse(status) if status else None
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if wanted is not None:
        tasks = [t for t in tasks if t.status == wanted]
    return list(reversed(tasks))


@router.post(
    "/tasks",
    response_model=Task,
    response_model_exclude_none=True,
    status_code=201,
    responses={409: {"description": "Task id already exists", "model": ErrorDetail}},
)
async def create_task(data: TaskCreate) -> Task:
    """Queue a task as OPEN. It runs on the next sweep."""
    try:
        return await asyncio.to_thread(get_store().create, new_task(data.id, data.title, data.priority))
    except TaskStoreError as exc:
        raise http_error(exc) from exc


@router.delete("/tasks")
async def clear_tasks() -> dict:
    try:
        removed = await asyncio.to_thread(get_store().clear)
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    return {"cleared": removed}


@router.get(
    "/tasks/{task_id}",
    response_model=Task,
    response_model_exclude_none=True,
    responses={404: {"description": "Task not found", "model": ErrorDetail}},
)
async def get_task(task_id: str) -> Task:
    try:
        return await asyncio.to_thread(get_store().get, task_id)
    except TaskStoreError as exc:
        raise http_error(exc) from exc


@router.patch(
    "/tasks/{task_id}",
    response_model=Task,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Missing or unknown status", "model": ErrorDetail},
        404: {"description": "Task not found", "model": ErrorDetail},
        409: {"description": "Transition not allowed", "model": ErrorDetail},
    },
)
async def update_task(task_id: str, data: TaskStatusUpdate) -> Task:
    """Advance a task's status and attach notes. Same rules as the update_task_status CLI."""
    if not data.status:
        raise HTTPException(status_code=400, detail="status is required")
    try:
        target = TaskStatus.parse(data.status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        return await asyncio.to_thread(
            get_store().update, task_id, lambda task: task_lifecycle.apply_status_update(task, target, data.notes)
        )
    except TaskStoreError as exc:
        raise http_error(exc) from exc


@router.delete(
    "/tasks/{task_id}",
    responses={404: {"description": "Task not found", "model": ErrorDetail}},
)
async def delete_task(task_id: str) -> dict:
    try:
        await asyncio.to_thread(get_store().delete_one, task_id)
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    return {"deleted": task_id}


@router.post(
    "/tasks/{task_id}/dispatch",
    response_model=TriggerAck,
    response_model_exclude_none=True,
    status_code=202,
    responses={
        404: {"description": "Task not found", "model": ErrorDetail},
        409: {"description": "Task is not OPEN", "model": ErrorDetail},
    },
)
async def dispatch_task(task_id: str) -> TriggerAck:
    """Send one queued task to the agent now, without waiting for the reply."""
    try:
        task = await asyncio.to_thread(agent_dispatcher.claim_for_dispatch, task_id)
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    agent_dispatcher.submit_detached(task.id, task.title)
    return TriggerAck(success=True, message="Agent triggered successfully", task=task)
