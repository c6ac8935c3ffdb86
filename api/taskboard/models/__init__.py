"""Pydantic models."""

from taskboard.models.error import ErrorDetail
from taskboard.models.task import (
    AgentTrigger,
    SessionTurn,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskStatusUpdate,
)

__all__ = [
    "AgentTrigger",
    "ErrorDetail",
    "SessionTurn",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskStatusUpdate",
]
