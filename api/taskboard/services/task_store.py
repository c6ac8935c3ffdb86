"""Task store: one JSON document holding every task, mutated under a store-global lock.

Writers (trigger route, bulk sweep, session webhook, the update_task_status CLI) all
go through TaskStore. Each mutation is a read-modify-write of the whole document
performed while holding:

- an in-process lock shared by every TaskStore pointing at the same file
- a cross-process FileLock on ``<document>.lock`` (the CLI runs in its own process)

The document is rewritten by writing a temp sibling and os.replace()-ing it, so a
reader never sees a truncated or half-written file. Readers do not lock.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from filelock import FileLock, Timeout
from pydantic import ValidationError

from taskboard.models.task import INITIAL_STATUSES, Task, TaskStatus, transition_path

logger = logging.getLogger(__name__)

Mutator = Callable[[Task], Optional[Task]]


class TaskStoreError(RuntimeError):
    pass


class TaskNotFoundError(TaskStoreError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f'Task with ID "{task_id}" not found')
        self.task_id = task_id


class DuplicateTaskIdError(TaskStoreError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f'Task with ID "{task_id}" already exists')
        self.task_id = task_id


class StoreUnavailableError(TaskStoreError):
    pass


class InvalidTransitionError(TaskStoreError):
    pass


class InvalidInputError(TaskStoreError):
    pass


_PATH_LOCKS: dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()
_STORE_CACHE: dict[str, Any] = {"path": "", "store": None}


def _path_lock(path: Path) -> threading.Lock:
    key = str(path)
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _PATH_LOCKS[key] = lock
        return lock


def _lock_timeout_seconds() -> float:
    raw = os.getenv("TASKS_STORE_LOCK_TIMEOUT", "30").strip()
    try:
        return max(0.1, float(raw))
    except ValueError:
        return 30.0


def _check_record(task: Task) -> None:
    if task.status == TaskStatus.DONE and task.completed_at is None:
        raise InvalidTransitionError(f"Task {task.id} is DONE without completedAt")
    if task.status != TaskStatus.DONE and task.completed_at is not None:
        raise InvalidTransitionError(f"Task {task.id} has completedAt while {task.status.value}")
    if task.error is not None and task.status != TaskStatus.FAILED:
        raise InvalidTransitionError(f"Task {task.id} has an error while {task.status.value}")


def _check_update(before: Task, after: Task) -> None:
    if after.id != before.id:
        raise InvalidInputError(f"Task id is immutable ({before.id} -> {after.id})")
    if after.title != before.title:
        raise InvalidInputError(f"Task {before.id} title is immutable")
    if after.priority != before.priority:
        raise InvalidInputError(f"Task {before.id} priority is immutable")
    if after.timestamp != before.timestamp:
        raise InvalidInputError(f"Task {before.id} timestamp is immutable")
    if transition_path(before.status, after.status) is None:
        raise InvalidTransitionError(
            f"Task {before.id} cannot move from {before.status.value} to {after.status.value}"
        )
    _check_record(after)


class TaskStore:
    """JSON-document task store. Storage order is append order."""

    def __init__(self, path: str | Path, *, create_missing: bool = True) -> None:
        self._path = Path(path).expanduser().resolve()
        self._create_missing = create_missing
        self._local_lock = _path_lock(self._path)
        self._file_lock = FileLock(
            str(self._path.with_name(self._path.name + ".lock")),
            timeout=_lock_timeout_seconds(),
        )

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _read(self) -> list[Task]:
        if not self._path.exists():
            if self._create_missing:
                return []
            raise StoreUnavailableError(f"Task store not found at {self._path}")
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailableError(f"Task store at {self._path} is unreadable: {exc}") from exc
        if not text.strip():
            return []
        try:
            raw = json.loads(text)
        except ValueError as exc:
            raise StoreUnavailableError(f"Task store at {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, list):
            raise StoreUnavailableError(
                f"Task store at {self._path} must hold a JSON array, got {type(raw).__name__}"
            )
        tasks: list[Task] = []
        for idx, item in enumerate(raw):
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as exc:
                raise StoreUnavailableError(f"Task store record #{idx} is invalid: {exc}") from exc
        return tasks

    def _write(self, tasks: list[Task]) -> None:
        payload = json.dumps([t.to_document() for t in tasks], indent=2, ensure_ascii=False)
        tmp = self._path.with_name(f".{self._path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StoreUnavailableError(f"Task store at {self._path} is not writable: {exc}") from exc
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._create_missing and not self._path.exists():
            raise StoreUnavailableError(f"Task store not found at {self._path}")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"Task store directory unavailable: {exc}") from exc
        with self._local_lock:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise StoreUnavailableError(f"Timed out waiting for lock on {self._path}") from exc
            try:
                yield
            finally:
                self._file_lock.release()

    @staticmethod
    def _index(tasks: list[Task], task_id: str) -> int:
        for idx, task in enumerate(tasks):
            if task.id == task_id:
                return idx
        raise TaskNotFoundError(task_id)

    # ---- public API ----

    def list(self) -> list[Task]:
        return self._read()

    def get(self, task_id: str) -> Task:
        tasks = self._read()
        return tasks[self._index(tasks, task_id)]

    def create(self, task: Task) -> Task:
        if not task.id.strip():
            raise InvalidInputError("Task id is required")
        if task.status not in INITIAL_STATUSES:
            raise InvalidTransitionError(f"Task {task.id} cannot be created as {task.status.value}")
        _check_record(task)
        with self._exclusive():
            tasks = self._read()
            if any(t.id == task.id for t in tasks):
                raise DuplicateTaskIdError(task.id)
            tasks.append(task)
            self._write(tasks)
        logger.info("task_created id=%s status=%s source=%s", task.id, task.status.value, task.source or "-")
        return task.model_copy(deep=True)

    def update(self, task_id: str, mutator: Mutator) -> Task:
        """Apply mutator to a copy of the task and persist it, all under the store lock.

        The mutator may edit the copy in place (returning None) or return a new Task.
        """
        with self._exclusive():
            tasks = self._read()
            idx = self._index(tasks, task_id)
            before = tasks[idx]
            draft = before.model_copy(deep=True)
            result = mutator(draft)
            candidate = result if result is not None else draft
            try:
                after = Task.model_validate(candidate.model_dump())
            except ValidationError as exc:
                raise InvalidInputError(f"Task {task_id} update is invalid: {exc}") from exc
            _check_update(before, after)
            tasks[idx] = after
            self._write(tasks)
        if after.status != before.status:
            logger.info("task_status id=%s %s->%s", task_id, before.status.value, after.status.value)
        return after.model_copy(deep=True)

    def delete_one(self, task_id: str) -> Task:
        with self._exclusive():
            tasks = self._read()
            removed = tasks.pop(self._index(tasks, task_id))
            self._write(tasks)
        logger.info("task_deleted id=%s", task_id)
        return removed

    def clear(self) -> int:
        with self._exclusive():
            count = len(self._read())
            self._write([])
        logger.info("task_store_cleared removed=%s", count)
        return count


def _default_path() -> Path:
    return Path(__file__).resolve().parents[2] / "data" / "tasks.json"


def tasks_store_path() -> Path:
    configured = os.getenv("TASKS_STORE_PATH")
    return Path(configured) if configured else _default_path()


def get_store() -> TaskStore:
    """Process-wide store for the configured path."""
    path = str(tasks_store_path())
    cached = _STORE_CACHE.get("store")
    if cached is not None and _STORE_CACHE.get("path") == path:
        return cached
    store = TaskStore(path)
    _STORE_CACHE["path"] = path
    _STORE_CACHE["store"] = store
    return store


def reset_store_cache() -> None:
    _STORE_CACHE["path"] = ""
    _STORE_CACHE["store"] = None
