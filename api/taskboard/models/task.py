"""Task models and the task status machine."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, raw: object) -> "TaskStatus":
        """Case-insensitive lookup. COMPLETED is the word agents are told to use for DONE."""
        if isinstance(raw, TaskStatus):
            return raw
        value = str(raw or "").strip().upper().replace("-", "_").replace(" ", "_")
        if value == "COMPLETED":
            return cls.DONE
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"status must be one of {[s.value for s in cls]}; got {raw!r}"
            ) from None


class TaskPriority(str, Enum):
    LOW = "LOW"
    HIGH = "HIGH"


# Single-step edges. DONE -> DONE is handled separately as a refresh.
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.OPEN: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.DONE, TaskStatus.FAILED}),
    TaskStatus.DONE: frozenset(),
    TaskStatus.FAILED: frozenset(),
}

INITIAL_STATUSES = frozenset({TaskStatus.OPEN, TaskStatus.IN_PROGRESS})


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in TRANSITIONS[current]


def transition_path(current: TaskStatus, target: TaskStatus) -> Optional[List[TaskStatus]]:
    """Statuses to step through to get from current to target (excluding current).

    Returns [] when already there and None when target is unreachable.
    """
    if current == target:
        return []
    frontier: list[tuple[TaskStatus, list[TaskStatus]]] = [(current, [])]
    seen = {current}
    while frontier:
        status, path = frontier.pop(0)
        for nxt in sorted(TRANSITIONS[status], key=lambda s: s.value):
            if nxt in seen:
                continue
            if nxt == target:
                return path + [nxt]
            seen.add(nxt)
            frontier.append((nxt, path + [nxt]))
    return None


class Task(BaseModel):
    """Task record as persisted and returned by the API.

    Field aliases keep the camelCase keys the dashboard reads from the task document.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str
    status: TaskStatus = TaskStatus.OPEN
    priority: TaskPriority = TaskPriority.LOW
    timestamp: datetime
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    output: Optional[str] = None
    source: Optional[str] = None
    error: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TaskCreate(BaseModel):
    """Request body for queueing a task without dispatching it. Whitespace-only title → 422."""

    id: Optional[str] = Field(default=None, max_length=200)
    title: str = Field(..., min_length=1, max_length=5000)
    priority: TaskPriority = TaskPriority.LOW

    @field_validator("id", "title", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v


class AgentTrigger(BaseModel):
    """Request body for the trigger endpoint: {id, task}. id defaults to a timestamp."""

    id: Optional[str] = Field(default=None, max_length=200)
    task: str = Field(..., min_length=1, max_length=5000)
    priority: TaskPriority = TaskPriority.LOW

    @field_validator("id", "task", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v


class TaskStatusUpdate(BaseModel):
    """Request body for PATCH /tasks/{id}. Same semantics as the update_task_status CLI."""

    status: Optional[str] = None
    notes: Optional[str] = None


class SessionTurn(BaseModel):
    """One conversational turn pushed by an external session."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(default="", alias="sessionId")
    role: str = ""
    content: str = ""


class TriggerAck(BaseModel):
    success: bool
    message: str
    task: Task


class SweepResult(BaseModel):
    success: bool
    message: str
    count: int


class TurnAck(BaseModel):
    success: bool
    action: str
    task: Optional[Task] = None


class GatewayStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connected: bool
    gateway_url: str = Field(alias="gatewayUrl")
    status: str
    details: Optional[Any] = None
    error: Optional[str] = None


class AgentModels(BaseModel):
    models: List[str] = Field(default_factory=list)
    primary: Optional[str] = None
    configured: bool = False
