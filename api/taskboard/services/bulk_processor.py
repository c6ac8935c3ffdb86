"""Sweep every OPEN task through the agent gateway, one at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from taskboard.models.task import TaskStatus
from taskboard.services import agent_dispatcher
from taskboard.services.task_store import (
    InvalidTransitionError,
    TaskNotFoundError,
    TaskStore,
    get_store,
)

logger = logging.getLogger(__name__)

Dispatch = Callable[..., Awaitable[Optional[str]]]

# The gateway serves one agent run at a time; concurrent sweeps queue here.
_SWEEP_LOCK = asyncio.Lock()


def reset_sweep_lock() -> None:
    global _SWEEP_LOCK
    _SWEEP_LOCK = asyncio.Lock()


async def run_all(store: Optional[TaskStore] = None, dispatch: Optional[Dispatch] = None) -> int:
    """Dispatch every OPEN task in insertion order. Returns how many were attempted.

    Each task is persisted as IN_PROGRESS before its gateway call, so an interrupted
    sweep leaves in-flight markers instead of OPEN tasks a retry would pick up again.
    """
    store = store or get_store()
    dispatch = dispatch or agent_dispatcher.submit
    async with _SWEEP_LOCK:
        snapshot = await asyncio.to_thread(store.list)
        pending = [task for task in snapshot if task.status == TaskStatus.OPEN]
        if not pending:
            logger.info("sweep_empty")
            return 0
        logger.info("sweep_start pending=%s", len(pending))

        processed = 0
        for task in pending:
            try:
                await asyncio.to_thread(agent_dispatcher.claim_for_dispatch, task.id, store=store)
            except (TaskNotFoundError, InvalidTransitionError) as exc:
                logger.info("sweep_skip task_id=%s reason=%s", task.id, exc)
                continue
            processed += 1
            try:
                await dispatch(task.id, task.title, store=store)
            except (TaskNotFoundError, InvalidTransitionError) as exc:
                logger.warning("sweep_dispatch_abandoned task_id=%s reason=%s", task.id, exc)
            except Exception as exc:
                logger.error("sweep_dispatch_crashed task_id=%s", task.id, exc_info=True)
                await asyncio.to_thread(
                    agent_dispatcher.mark_failed, store, task.id, f"{exc.__class__.__name__}: {exc}"
                )

    logger.info("sweep_done processed=%s", processed)
    return processed
