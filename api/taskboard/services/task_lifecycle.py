"""Status transitions and output bookkeeping applied inside TaskStore.update mutators."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from taskboard.models.task import Task, TaskStatus, can_transition, transition_path
from taskboard.services.task_store import InvalidTransitionError

OUTPUT_DELIMITER = "\n\n---\n\n"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def transition(task: Task, target: TaskStatus, *, error: Optional[str] = None) -> Task:
    """Move task one step along the transition table.

    DONE -> DONE re-stamps completedAt. Every other edge must be in the table.
    """
    now = _now()
    if task.status == TaskStatus.DONE and target == TaskStatus.DONE:
        task.completed_at = now
        task.updated_at = now
        return task
    if not can_transition(task.status, target):
        raise InvalidTransitionError(
            f"Task {task.id} cannot move from {task.status.value} to {target.value}"
        )
    task.status = target
    task.updated_at = now
    if target == TaskStatus.DONE:
        task.completed_at = now
    elif target == TaskStatus.FAILED:
        task.error = error or "unknown error"
    return task


def advance(task: Task, target: TaskStatus, *, error: Optional[str] = None) -> Task:
    """Walk the transition table from the task's status to target one edge at a time."""
    if task.status == target:
        if target == TaskStatus.DONE:
            return transition(task, target)
        task.updated_at = _now()
        return task
    path = transition_path(task.status, target)
    if path is None:
        raise InvalidTransitionError(
            f"Task {task.id} cannot move from {task.status.value} to {target.value}"
        )
    for step in path:
        transition(task, step, error=error)
    return task


def append_output(task: Task, text: str) -> Task:
    current = task.output or ""
    task.output = f"{current}{OUTPUT_DELIMITER}{text}" if current else text
    return task


def claim(task: Task) -> Task:
    """OPEN -> IN_PROGRESS; a task already IN_PROGRESS is left as is."""
    if task.status == TaskStatus.IN_PROGRESS:
        return task
    return transition(task, TaskStatus.IN_PROGRESS)


def apply_status_update(task: Task, target: TaskStatus, notes: Optional[str] = None) -> Task:
    """Operator status change with optional notes. For FAILED the notes become the error."""
    advance(task, target, error=notes if target == TaskStatus.FAILED else None)
    if notes is not None:
        task.notes = notes
    return task
