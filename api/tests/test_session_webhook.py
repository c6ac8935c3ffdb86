"""Session turns mapped onto tasks."""

from __future__ import annotations

import pytest

from taskboard.models.task import TaskStatus
from taskboard.services import session_webhook, task_lifecycle
from taskboard.services.task_store import InvalidInputError, InvalidTransitionError, TaskStore


def test_conversation_becomes_one_done_task(store: TaskStore) -> None:
    first = session_webhook.on_turn("s1", "user", "do X", store=store)
    second = session_webhook.on_turn("s1", "user", "do Y", store=store)
    reply = session_webhook.on_turn("s1", "assistant", "done", store=store)

    assert first.action == "created"
    assert second.action == "ignored"
    assert reply.action == "completed"
    tasks = store.list()
    assert len(tasks) == 1
    task = tasks[0]
    assert task.id == "s1"
    assert task.title == "do X"
    assert task.source == "External"
    assert task.status == TaskStatus.DONE
    assert task.output == "done"
    assert task.completed_at is not None


def test_user_turn_creates_in_progress_task(store: TaskStore) -> None:
    outcome = session_webhook.on_turn("s1", "user", "summarize the logs", store=store)
    assert outcome.task is not None
    assert outcome.task.status == TaskStatus.IN_PROGRESS
    assert outcome.task.source == "External"


def test_stray_assistant_turn_creates_nothing(store: TaskStore) -> None:
    outcome = session_webhook.on_turn("ghost", "assistant", "hello", store=store)
    assert outcome.action == "dropped"
    assert outcome.task is None
    assert store.list() == []


def test_assistant_turns_append_and_stay_done(store: TaskStore) -> None:
    session_webhook.on_turn("s1", "user", "do X", store=store)
    first = session_webhook.on_turn("s1", "assistant", "turn1", store=store)
    second = session_webhook.on_turn("s1", "assistant", "turn2", store=store)

    assert first.task.status == TaskStatus.DONE
    assert second.task.status == TaskStatus.DONE
    assert second.task.output == "turn1\n\n---\n\nturn2"
    assert second.task.completed_at >= first.task.completed_at


def test_role_is_case_insensitive(store: TaskStore) -> None:
    assert session_webhook.on_turn("s1", "User", "do X", store=store).action == "created"
    assert session_webhook.on_turn("s1", " ASSISTANT ", "ok", store=store).action == "completed"


@pytest.mark.parametrize(
    "session_id,role,content",
    [("", "user", "x"), ("s1", "", "x"), ("s1", "user", "")],
)
def test_missing_fields_rejected(store: TaskStore, session_id: str, role: str, content: str) -> None:
    with pytest.raises(InvalidInputError):
        session_webhook.on_turn(session_id, role, content, store=store)
    assert store.list() == []


def test_unknown_role_rejected(store: TaskStore) -> None:
    with pytest.raises(InvalidInputError):
        session_webhook.on_turn("s1", "system", "x", store=store)


def test_assistant_turn_on_failed_task_rejected(store: TaskStore) -> None:
    session_webhook.on_turn("s1", "user", "do X", store=store)
    store.update("s1", lambda t: task_lifecycle.advance(t, TaskStatus.FAILED, error="gave up"))
    with pytest.raises(InvalidTransitionError):
        session_webhook.on_turn("s1", "assistant", "late reply", store=store)
    assert store.get("s1").output is None
