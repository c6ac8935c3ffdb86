"""Map an external conversation (user/assistant turns) onto one task per session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from taskboard.models.task import Task, TaskPriority, TaskStatus
from taskboard.services import task_lifecycle
from taskboard.services.task_store import (
    DuplicateTaskIdError,
    InvalidInputError,
    TaskNotFoundError,
    TaskStore,
    get_store,
)

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
EXTERNAL_SOURCE = "External"


@dataclass
class TurnOutcome:
    action: str  # created | ignored | completed | dropped
    task: Optional[Task] = None


def _complete_with_reply(task: Task, content: str) -> Task:
    task_lifecycle.append_output(task, content)
    return task_lifecycle.advance(task, TaskStatus.DONE)


def on_turn(session_id: str, role: str, content: str, store: Optional[TaskStore] = None) -> TurnOutcome:
    """Apply one turn. The first user turn names the task; assistant turns append and complete it."""
    session_id = (session_id or "").strip()
    role = (role or "").strip().lower()
    if not session_id or not role or not content:
        raise InvalidInputError("Missing required fields: sessionId, role, content")
    store = store or get_store()

    if role == ROLE_USER:
        task = Task(
            id=session_id,
            title=content,
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.LOW,
            timestamp=datetime.now(timezone.utc),
            source=EXTERNAL_SOURCE,
        )
        try:
            created = store.create(task)
        except DuplicateTaskIdError:
            logger.info("webhook_user_turn_ignored session=%s reason=title already set", session_id)
            return TurnOutcome(action="ignored")
        logger.info("webhook_task_created session=%s", session_id)
        return TurnOutcome(action="created", task=created)

    if role == ROLE_ASSISTANT:
        try:
            updated = store.update(session_id, lambda task: _complete_with_reply(task, content))
        except TaskNotFoundError:
            logger.warning("webhook_assistant_turn_dropped session=%s reason=unknown session", session_id)
            return TurnOutcome(action="dropped")
        logger.info("webhook_task_updated session=%s output_chars=%s", session_id, len(updated.output or ""))
        return TurnOutcome(action="completed", task=updated)

    raise InvalidInputError(f"role must be '{ROLE_USER}' or '{ROLE_ASSISTANT}'; got {role!r}")
