"""Dispatch tasks to the agent gateway and record the outcome on the task.

Two modes:
- ``submit``: awaited; used by the bulk sweep so gateway calls stay sequential.
- ``submit_detached``: scheduled on the running loop and not awaited by the caller.

Both end the same way: DONE with the reply appended to output, or FAILED with the
gateway error recorded. A failure never leaves the task stuck in IN_PROGRESS.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from taskboard.models.task import Task, TaskStatus
from taskboard.services import gateway_client, gateway_config, task_lifecycle
from taskboard.services.task_store import (
    InvalidTransitionError,
    TaskNotFoundError,
    TaskStore,
    get_store,
)

logger = logging.getLogger(__name__)

# Strong refs so detached dispatches are not garbage-collected mid-flight.
_IN_FLIGHT: set[asyncio.Task] = set()


@dataclass
class DispatchOptions:
    working_directory: Optional[str] = None
    tools: list[dict[str, Any]] = field(default_factory=list)


def load_options() -> DispatchOptions:
    return DispatchOptions(
        working_directory=gateway_config.working_directory(),
        tools=gateway_config.load_tools(),
    )


def build_prompt(task_id: str, instruction: str, options: Optional[DispatchOptions] = None) -> str:
    options = options or DispatchOptions()
    parts = [f"TASK_ID: {task_id}. INSTRUCTION: {instruction}."]
    if options.working_directory:
        parts.append(f'WORKING_DIRECTORY: "{options.working_directory}".')
        parts.append("IMPORTANT: Use the specified working directory for all file operations.")
    parts.append("When finished, update the task status to DONE.")
    return " ".join(parts)


def claim_for_dispatch(task_id: str, store: Optional[TaskStore] = None) -> Task:
    """OPEN -> IN_PROGRESS under the store lock. The caller that wins this owns the dispatch.

    Raises InvalidTransitionError when another writer already claimed or finished the task.
    """
    store = store or get_store()
    return store.update(task_id, lambda task: task_lifecycle.transition(task, TaskStatus.IN_PROGRESS))


def mark_failed(store: TaskStore, task_id: str, message: str) -> None:
    """Move a claimed task to FAILED. A task deleted or already finished is left alone."""
    try:
        store.update(
            task_id,
            lambda task: task_lifecycle.advance(task, TaskStatus.FAILED, error=message),
        )
    except (TaskNotFoundError, InvalidTransitionError) as exc:
        logger.warning("dispatch_failure_not_recorded task_id=%s reason=%s", task_id, exc)


def _record_reply(task: Task, output: str) -> Task:
    task_lifecycle.append_output(task, output)
    return task_lifecycle.advance(task, TaskStatus.DONE)


async def submit(
    task_id: str,
    instruction: str,
    options: Optional[DispatchOptions] = None,
    store: Optional[TaskStore] = None,
) -> Optional[str]:
    """Send one task to the gateway and wait for the reply.

    Returns the reply text, or None when the gateway call failed (the task is then FAILED).
    Raises TaskNotFoundError if the task does not exist when dispatch starts. An OPEN task
    is claimed here; callers racing other writers should use claim_for_dispatch first.
    """
    store = store or get_store()
    await asyncio.to_thread(store.update, task_id, task_lifecycle.claim)
    if options is None:
        options = load_options()
    prompt = build_prompt(task_id, instruction, options)
    logger.info(
        "dispatch_start task_id=%s tools=%s workdir=%s",
        task_id,
        len(options.tools),
        options.working_directory or "-",
    )

    try:
        output = await gateway_client.chat_completion(prompt, tools=options.tools or None)
    except gateway_client.GatewayError as exc:
        logger.error("dispatch_failed task_id=%s error=%s", task_id, exc)
        await asyncio.to_thread(mark_failed, store, task_id, str(exc))
        return None
    except Exception as exc:
        logger.error("dispatch_failed task_id=%s error=%s", task_id, exc, exc_info=True)
        await asyncio.to_thread(mark_failed, store, task_id, f"{exc.__class__.__name__}: {exc}")
        return None

    try:
        await asyncio.to_thread(store.update, task_id, lambda task: _record_reply(task, output))
    except TaskNotFoundError:
        logger.warning("dispatch_reply_dropped task_id=%s reason=task deleted", task_id)
    except InvalidTransitionError as exc:
        logger.warning("dispatch_reply_dropped task_id=%s reason=%s", task_id, exc)
    else:
        logger.info("dispatch_done task_id=%s output_chars=%s", task_id, len(output))
    return output


def _log_detached_result(handle: asyncio.Task) -> None:
    _IN_FLIGHT.discard(handle)
    if handle.cancelled():
        logger.warning("dispatch_cancelled name=%s", handle.get_name())
        return
    exc = handle.exception()
    if exc is not None:
        logger.error("dispatch_crashed name=%s", handle.get_name(), exc_info=exc)


def submit_detached(
    task_id: str,
    instruction: str,
    options: Optional[DispatchOptions] = None,
    store: Optional[TaskStore] = None,
) -> asyncio.Task:
    """Schedule submit() without awaiting it. Must be called from a running event loop."""
    handle = asyncio.create_task(
        submit(task_id, instruction, options=options, store=store),
        name=f"dispatch:{task_id}",
    )
    _IN_FLIGHT.add(handle)
    handle.add_done_callback(_log_detached_result)
    return handle


async def wait_in_flight() -> None:
    """Wait for every detached dispatch started so far."""
    if _IN_FLIGHT:
        await asyncio.gather(*list(_IN_FLIGHT), return_exceptions=True)
