"""Inbound session webhook: external conversations become tasks."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter

from taskboard.models.error import ErrorDetail
from taskboard.models.task import SessionTurn, TurnAck
from taskboard.routers.tasks import http_error
from taskboard.services import session_webhook
from taskboard.services.task_store import TaskStoreError

router = APIRouter()


@router.post(
    "/webhooks/session",
    response_model=TurnAck,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Missing fields or unknown role", "model": ErrorDetail},
        409: {"description": "Session task already FAILED", "model": ErrorDetail},
    },
)
async def session_turn(data: SessionTurn) -> TurnAck:
    try:
        outcome = await asyncio.to_thread(session_webhook.on_turn, data.session_id, data.role, data.content)
    except TaskStoreError as exc:
        raise http_error(exc) from exc
    return TurnAck(success=True, action=outcome.action, task=outcome.task)
