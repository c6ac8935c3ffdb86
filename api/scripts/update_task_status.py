#!/usr/bin/env python3
"""Update a task's status in the shared task document.

Agents run this when they finish (or give up on) a task:

  python api/scripts/update_task_status.py --id 1718000000000 --status DONE --notes "wrote README"

Writes go through the same store lock as the API server, so running this while the
server is up is safe.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

_api_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _api_dir)

from dotenv import load_dotenv

load_dotenv(os.path.join(_api_dir, ".env"))

from taskboard.models.task import TaskStatus
from taskboard.services import task_lifecycle
from taskboard.services.task_store import TaskStore, TaskStoreError, tasks_store_path


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Update the status of a task on the task board.")
    parser.add_argument("--id", required=True, help="Task id")
    parser.add_argument(
        "--status",
        required=True,
        help="OPEN, IN_PROGRESS, DONE (or COMPLETED) or FAILED; case-insensitive",
    )
    parser.add_argument("--notes", default=None, help="Free text stored on the task; the error text for FAILED")
    parser.add_argument("--file", default=None, help="Task document (default: $TASKS_STORE_PATH or api/data/tasks.json)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _parser().parse_args(argv)

    try:
        target = TaskStatus.parse(args.status)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    path = args.file or str(tasks_store_path())
    if not os.path.isfile(path):
        print(f"Error: task file not found: {path}", file=sys.stderr)
        return 1

    store = TaskStore(path, create_missing=False)
    try:
        task = store.update(args.id, lambda t: task_lifecycle.apply_status_update(t, target, args.notes))
    except TaskStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f'Success: Task "{task.id}" updated to {task.status.value}')
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
